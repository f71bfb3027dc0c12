"""Render chapter pages, the landing page, the print page and the not-found page."""

from __future__ import annotations

import posixpath
import re
from dataclasses import dataclass, field
from pathlib import Path

from .content import Chapter
from .markdown import render_markdown
from .templates import NOT_FOUND_ROOT, PRINT_FILENAME, SEARCH_INDEX_FILENAME, TemplateAssets

INDEX_FILENAME = "index.html"
_ANCHOR_RE = re.compile(r"[^a-z0-9]+")


@dataclass(slots=True)
class PageWriteResult:
    """Paths written while rendering the book."""

    chapter_pages: list[Path] = field(default_factory=list)
    index_page: Path | None = None
    print_page: Path | None = None
    not_found_page: Path | None = None

    @property
    def all_pages(self) -> list[Path]:
        pages = list(self.chapter_pages)
        for extra in (self.index_page, self.print_page, self.not_found_page):
            if extra is not None:
                pages.append(extra)
        return pages


def write_book_pages(assets: TemplateAssets, output_root: Path) -> PageWriteResult:
    """Render every page of the book into ``output_root``."""
    result = PageWriteResult()
    result.chapter_pages = write_chapter_pages(assets, output_root)
    result.index_page = write_index_page(assets, output_root)
    if assets.config.html.print_enabled:
        result.print_page = write_print_page(assets, output_root)
    result.not_found_page = write_not_found_page(assets, output_root)
    return result


def write_chapter_pages(assets: TemplateAssets, output_root: Path) -> list[Path]:
    """Render one page per non-draft chapter, linked in manifest order."""
    chapters = assets.book.rendered_chapters()
    written: list[Path] = []
    for position, chapter in enumerate(chapters):
        if chapter.output_path is None:
            continue
        previous = chapters[position - 1] if position > 0 else None
        following = chapters[position + 1] if position + 1 < len(chapters) else None
        html = _render_chapter(
            assets,
            chapter,
            output_path=chapter.output_path,
            previous=previous,
            following=following,
        )
        written.append(_write(output_root, chapter.output_path, html))
    return written


def write_index_page(assets: TemplateAssets, output_root: Path) -> Path | None:
    """Write ``index.html`` from the first chapter unless a chapter already renders there."""
    chapters = assets.book.rendered_chapters()
    if not chapters:
        return None
    if any(chapter.output_path == INDEX_FILENAME for chapter in chapters):
        return output_root / INDEX_FILENAME
    first = chapters[0]
    following = chapters[1] if len(chapters) > 1 else None
    html = _render_chapter(
        assets,
        first,
        output_path=INDEX_FILENAME,
        previous=None,
        following=following,
    )
    return _write(output_root, INDEX_FILENAME, html)


def write_print_page(assets: TemplateAssets, output_root: Path) -> Path:
    """Concatenate every chapter into a single printable page."""
    readme_as_index = assets.config.html.readme_as_index
    sections = []
    for chapter in assets.book.rendered_chapters():
        if chapter.source_path is None or chapter.output_path is None:
            continue
        anchor = print_anchor(chapter.output_path)
        sections.append(
            {
                "anchor": anchor,
                "title": chapter.title,
                # Heading ids are namespaced by chapter on the shared print page.
                "content": render_markdown(
                    chapter.body,
                    readme_as_index=readme_as_index,
                    base_dir=posixpath.dirname(chapter.source_path),
                    id_prefix=anchor,
                ),
            }
        )
    context = assets.build_context(title=assets.book.title, output_path=PRINT_FILENAME)
    context["sections"] = sections
    html = assets.theme.render_page("print", context)
    return _write(output_root, PRINT_FILENAME, html)


def write_not_found_page(assets: TemplateAssets, output_root: Path) -> Path:
    """Render the page the hosting provider serves for unknown paths."""
    filename = assets.config.html.not_found
    root = f"{assets.config.html.site_url}/" if assets.config.html.site_url else NOT_FOUND_ROOT
    context = assets.build_context(
        title=f"Page not found - {assets.book.title}",
        output_path=filename,
        root=root,
    )
    html = assets.theme.render_page("not_found", context)
    return _write(output_root, filename, html)


def planned_page_paths(assets: TemplateAssets) -> set[str]:
    """Output-relative paths that rendered pages and the search index will occupy."""
    html = assets.config.html
    paths = {chapter.output_path for chapter in assets.book.rendered_chapters() if chapter.output_path}
    paths.update({INDEX_FILENAME, html.not_found})
    if html.print_enabled:
        paths.add(PRINT_FILENAME)
    if html.search_enabled:
        paths.add(SEARCH_INDEX_FILENAME)
    return paths


def print_anchor(output_path: str) -> str:
    """Stable element id for a chapter section on the print page."""
    return "chapter-" + _ANCHOR_RE.sub("-", output_path.lower()).strip("-")


def _render_chapter(
    assets: TemplateAssets,
    chapter: Chapter,
    *,
    output_path: str,
    previous: Chapter | None,
    following: Chapter | None,
) -> str:
    # Pages written outside the chapter's own directory re-root its relative links.
    chapter_dir = posixpath.dirname(chapter.output_path or output_path)
    page_dir = posixpath.dirname(output_path)
    base_dir = chapter_dir if chapter_dir != page_dir else None
    content = render_markdown(
        chapter.body,
        readme_as_index=assets.config.html.readme_as_index,
        base_dir=base_dir,
    )
    context = assets.build_context(
        title=f"{chapter.title} - {assets.book.title}",
        output_path=output_path,
        active=chapter,
    )
    root = context["page"]["path_to_root"]
    context["content"] = content
    context["chapter"] = {"title": chapter.title, "number": str(chapter.number) if chapter.number is not None else None}
    context["previous"] = _nav_link(assets, previous, root=root)
    context["next"] = _nav_link(assets, following, root=root)
    return assets.theme.render_page("chapter", context)


def _nav_link(assets: TemplateAssets, chapter: Chapter | None, *, root: str) -> dict[str, str] | None:
    if chapter is None:
        return None
    href = assets.chapter_href(chapter, root=root)
    if href is None:
        return None
    return {"title": chapter.title, "href": href}


def _write(output_root: Path, relative: str, html: str) -> Path:
    destination = output_root / relative
    destination.parent.mkdir(parents=True, exist_ok=True)
    destination.write_text(html, encoding="utf-8")
    return destination
