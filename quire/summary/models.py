"""Pydantic models describing the parsed SUMMARY.md manifest."""

from __future__ import annotations

from typing import Annotated, Iterator, Literal, Union

from pydantic import BaseModel, Field


class SectionNumber(BaseModel):
    """Hierarchical chapter number such as ``1.2.``."""

    parts: tuple[int, ...] = Field(default=())

    def child(self, index: int) -> "SectionNumber":
        return SectionNumber(parts=(*self.parts, index))

    def __str__(self) -> str:
        return "".join(f"{part}." for part in self.parts)


class SummaryLink(BaseModel):
    """Manifest entry pointing at a document, or a draft when ``location`` is None."""

    kind: Literal["link"] = "link"
    title: str
    location: str | None = Field(default=None, description="Path relative to the source dir.")
    number: SectionNumber | None = Field(default=None)
    nested_items: list["SummaryItem"] = Field(default_factory=list)
    line: int | None = Field(default=None, description="1-based line in SUMMARY.md.")

    @property
    def is_draft(self) -> bool:
        return self.location is None


class PartTitle(BaseModel):
    """Heading grouping the numbered chapters that follow it."""

    kind: Literal["part"] = "part"
    title: str


class Separator(BaseModel):
    """Horizontal rule rendered as a divider in the navigation."""

    kind: Literal["separator"] = "separator"


SummaryItem = Annotated[Union[SummaryLink, PartTitle, Separator], Field(discriminator="kind")]


class Summary(BaseModel):
    """Complete table of contents in manifest order."""

    title: str | None = Field(default=None)
    prefix_chapters: list[SummaryItem] = Field(default_factory=list)
    numbered_chapters: list[SummaryItem] = Field(default_factory=list)
    suffix_chapters: list[SummaryItem] = Field(default_factory=list)

    @property
    def items(self) -> list[SummaryItem]:
        return [*self.prefix_chapters, *self.numbered_chapters, *self.suffix_chapters]

    def iter_links(self) -> Iterator[SummaryLink]:
        """Yield every link depth-first in navigation order."""
        yield from _walk_links(self.items)


def _walk_links(items: list[SummaryItem]) -> Iterator[SummaryLink]:
    for item in items:
        if isinstance(item, SummaryLink):
            yield item
            yield from _walk_links(item.nested_items)


SummaryLink.model_rebuild()
Summary.model_rebuild()
