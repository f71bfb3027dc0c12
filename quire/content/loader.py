"""Resolve manifest entries against the source tree into a :class:`Book`."""

from __future__ import annotations

import logging
import posixpath
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

from ..config import Config
from ..summary import PartTitle, Separator, Summary, SummaryItem, SummaryLink, load_summary
from .issues import BookIssue, BookValidationError, IssueSeverity
from .models import Book, BookItem, Chapter, html_path

logger = logging.getLogger(__name__)

MARKDOWN_SUFFIXES = {".md", ".markdown"}


@dataclass(slots=True)
class _Resolution:
    config: Config
    summary_label: str
    issues: list[BookIssue] = field(default_factory=list)
    sources: dict[str, int | None] = field(default_factory=dict)
    outputs: dict[str, str] = field(default_factory=dict)

    def error(self, message: str, line: int | None) -> None:
        self.issues.append(BookIssue(message, IssueSeverity.ERROR, self.summary_label, line))

    def warning(self, message: str, source: str, line: int | None = None) -> None:
        self.issues.append(BookIssue(message, IssueSeverity.WARNING, source, line))


def load_book(config: Config) -> tuple[Book, list[BookIssue]]:
    """Parse the manifest and load every referenced document.

    Raises ``SummaryError`` for structural manifest problems and
    ``BookValidationError`` when entries reference missing, duplicate or
    out-of-tree documents. Warnings are logged and returned with the book.
    """
    summary = load_summary(config.summary_path)
    book, issues = resolve_book(summary, config)
    for issue in issues:
        if issue.severity is IssueSeverity.WARNING:
            logger.warning("%s: %s", issue.location, issue.message)
    if any(issue.severity is IssueSeverity.ERROR for issue in issues):
        raise BookValidationError(issues)
    return book, issues


def resolve_book(summary: Summary, config: Config) -> tuple[Book, list[BookIssue]]:
    """Build the book tree and collect every issue found along the way."""
    state = _Resolution(config=config, summary_label=config.summary_filename)
    items = _resolve_items(summary.items, state, parents=[])
    _report_orphans(state)
    title = config.book.title or summary.title or "Untitled Book"
    return Book(title=title, items=items), state.issues


def _resolve_items(items: Iterable[SummaryItem], state: _Resolution, parents: list[str]) -> list[BookItem]:
    resolved: list[BookItem] = []
    for item in items:
        if isinstance(item, (PartTitle, Separator)):
            resolved.append(item)
            continue
        chapter = _resolve_link(item, state, parents)
        chapter.sub_items = _resolve_items(item.nested_items, state, [*parents, item.title])
        resolved.append(chapter)
    return resolved


def _resolve_link(link: SummaryLink, state: _Resolution, parents: list[str]) -> Chapter:
    chapter = Chapter(title=link.title, number=link.number, parent_titles=list(parents))
    if link.location is None:
        state.warning(f"Draft chapter '{link.title}' has no document and renders no page.", state.summary_label, link.line)
        return chapter

    relative = _normalize_relative(link.location)
    if relative is None:
        state.error(f"Chapter '{link.title}' points outside the source directory: '{link.location}'.", link.line)
        return chapter

    if relative in state.sources:
        first_line = state.sources[relative]
        where = f" (first listed on line {first_line})" if first_line is not None else ""
        state.error(f"Document '{relative}' is listed more than once{where}.", link.line)
        return chapter
    state.sources[relative] = link.line

    if Path(relative).suffix.lower() not in MARKDOWN_SUFFIXES:
        state.error(f"Chapter '{link.title}' must reference a markdown document, got '{relative}'.", link.line)
        return chapter

    path = state.config.source_dir / relative
    if not path.is_file():
        state.error(f"Chapter '{link.title}' references missing document '{relative}'.", link.line)
        return chapter

    try:
        body = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        state.error(f"Unable to read '{relative}': {exc}", link.line)
        return chapter

    output = html_path(relative, readme_as_index=state.config.html.readme_as_index)
    if output in state.outputs:
        state.error(
            f"Documents '{state.outputs[output]}' and '{relative}' both render to '{output}'.",
            link.line,
        )
        return chapter
    state.outputs[output] = relative

    if not body.strip():
        state.warning("Document is empty.", relative)

    chapter.source_path = relative
    chapter.output_path = output
    chapter.body = body
    return chapter


def _normalize_relative(location: str) -> str | None:
    normalized = posixpath.normpath(location.replace("\\", "/").lstrip("/"))
    if normalized in {".", ""} or normalized == ".." or normalized.startswith("../"):
        return None
    return normalized


def _report_orphans(state: _Resolution) -> None:
    root = state.config.source_dir
    if not root.exists():
        return
    summary_path = state.config.summary_path.resolve()
    for path in sorted(root.rglob("*")):
        if not path.is_file() or path.suffix.lower() not in MARKDOWN_SUFFIXES:
            continue
        if path.resolve() == summary_path:
            continue
        relative = path.relative_to(root).as_posix()
        if any(part.startswith(".") for part in path.relative_to(root).parts):
            continue
        if relative not in state.sources:
            state.warning("Document is not listed in the manifest and will not be rendered.", relative)
