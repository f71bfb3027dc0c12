"""Typed representations of the book's chapters."""

from __future__ import annotations

from pathlib import PurePosixPath
from typing import Annotated, Iterator, Literal, Union

from pydantic import BaseModel, Field

from ..summary.models import PartTitle, SectionNumber, Separator


def html_path(source: str, *, readme_as_index: bool = True) -> str:
    """Map a markdown path relative to the source dir onto its rendered page path."""
    path = PurePosixPath(source)
    if readme_as_index and path.name.lower() == "readme.md":
        return (path.parent / "index.html").as_posix()
    return path.with_suffix(".html").as_posix()


class Chapter(BaseModel):
    """A document placed in the book by the manifest."""

    kind: Literal["chapter"] = "chapter"
    title: str = Field(description="Link text from the manifest.")
    number: SectionNumber | None = Field(default=None)
    source_path: str | None = Field(
        default=None,
        description="POSIX path relative to the source dir; None for draft chapters.",
    )
    output_path: str | None = Field(default=None, description="Rendered page path relative to the output dir.")
    body: str = Field(default="", description="Raw markdown body.")
    parent_titles: list[str] = Field(default_factory=list)
    sub_items: list["BookItem"] = Field(default_factory=list)

    @property
    def is_draft(self) -> bool:
        return self.source_path is None

    @property
    def display_title(self) -> str:
        if self.number is None:
            return self.title
        return f"{self.number} {self.title}"


BookItem = Annotated[Union[Chapter, PartTitle, Separator], Field(discriminator="kind")]


class Book(BaseModel):
    """Chapters resolved against the source tree, in navigation order."""

    title: str = Field(default="Untitled Book")
    items: list[BookItem] = Field(default_factory=list)

    def iter_chapters(self) -> Iterator[Chapter]:
        """Yield every chapter, drafts included, depth-first in manifest order."""
        yield from _walk_chapters(self.items)

    def rendered_chapters(self) -> list[Chapter]:
        """Chapters that produce a page, in reading order."""
        return [chapter for chapter in self.iter_chapters() if not chapter.is_draft]


def _walk_chapters(items: list[BookItem]) -> Iterator[Chapter]:
    for item in items:
        if isinstance(item, Chapter):
            yield item
            yield from _walk_chapters(item.sub_items)


Chapter.model_rebuild()
Book.model_rebuild()
