"""Parse SUMMARY.md into a :class:`Summary` using the markdown-it token stream."""

from __future__ import annotations

from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Callable
from urllib.parse import unquote, urlsplit

from markdown_it import MarkdownIt
from markdown_it.token import Token

from ..errors import QuireError
from .models import PartTitle, SectionNumber, Separator, Summary, SummaryItem, SummaryLink

_LIST_OPEN = {"bullet_list_open", "ordered_list_open"}


class SummaryError(QuireError):
    """Raised when SUMMARY.md does not describe a valid table of contents."""

    def __init__(self, message: str, *, line: int | None = None, source: Path | None = None) -> None:
        location = ""
        if source is not None:
            location = f"{source.as_posix()}"
            if line is not None:
                location += f":{line}"
            location += ": "
        elif line is not None:
            location = f"line {line}: "
        super().__init__(f"{location}{message}")
        self.line = line
        self.source = source
        self.detail = message


class _Phase(Enum):
    PREFIX = "prefix"
    NUMBERED = "numbered"
    SUFFIX = "suffix"


@lru_cache(maxsize=1)
def _parser() -> MarkdownIt:
    # Plain CommonMark keeps link titles literal (no typographer replacements).
    return MarkdownIt("commonmark")


def load_summary(path: Path) -> Summary:
    """Read and parse the manifest file at ``path``."""
    if not path.exists():
        raise SummaryError(f"Manifest not found: {path.as_posix()}")
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise SummaryError(f"Unable to read manifest: {exc}", source=path) from exc
    try:
        return parse_summary(text)
    except SummaryError as exc:
        raise SummaryError(exc.detail, line=exc.line, source=path) from exc


def parse_summary(text: str) -> Summary:
    """Parse manifest markdown into prefix, numbered and suffix chapter lists."""
    return _SummaryParser(_parser().parse(text)).parse()


class _SummaryParser:
    def __init__(self, tokens: list[Token]) -> None:
        self._tokens = tokens
        self._summary = Summary()
        self._phase = _Phase.PREFIX
        self._top_level_count = 0

    def parse(self) -> Summary:
        tokens = self._tokens
        index = 0
        while index < len(tokens):
            token = tokens[index]
            if token.type == "heading_open":
                self._add_heading(token, tokens[index + 1])
                index += 3
            elif token.type == "paragraph_open":
                self._add_paragraph(token, tokens[index + 1])
                index += 3
            elif token.type in _LIST_OPEN:
                index = self._add_numbered_list(index)
            elif token.type == "hr":
                self._current_section().append(Separator())
                index += 1
            elif token.type == "html_block":
                # Comments and other raw HTML carry no navigation structure.
                index += 1
            else:
                raise SummaryError(f"Unexpected {token.type} in manifest.", line=_line(token))
        return self._summary

    def _current_section(self) -> list[SummaryItem]:
        if self._phase is _Phase.PREFIX:
            return self._summary.prefix_chapters
        if self._phase is _Phase.NUMBERED:
            return self._summary.numbered_chapters
        return self._summary.suffix_chapters

    def _add_heading(self, token: Token, inline: Token) -> None:
        text = _inline_text(inline.children or []).strip()
        if self._summary.title is None and not self._summary.items:
            self._summary.title = text
            return
        if self._phase is _Phase.SUFFIX:
            raise SummaryError("Part titles cannot follow suffix chapters.", line=_line(token))
        self._phase = _Phase.NUMBERED
        self._summary.numbered_chapters.append(PartTitle(title=text))

    def _add_paragraph(self, token: Token, inline: Token) -> None:
        links = _paragraph_links(inline, line=_line(token))
        if self._phase is _Phase.NUMBERED:
            self._phase = _Phase.SUFFIX
        self._current_section().extend(links)

    def _add_numbered_list(self, index: int) -> int:
        token = self._tokens[index]
        if self._phase is _Phase.SUFFIX:
            raise SummaryError("Numbered chapters cannot follow suffix chapters.", line=_line(token))
        self._phase = _Phase.NUMBERED

        def next_number() -> SectionNumber:
            self._top_level_count += 1
            return SectionNumber(parts=(self._top_level_count,))

        items, index = self._parse_list(index, next_number)
        self._summary.numbered_chapters.extend(items)
        return index

    def _parse_list(self, index: int, next_number: Callable[[], SectionNumber]) -> tuple[list[SummaryItem], int]:
        tokens = self._tokens
        open_token = tokens[index]
        close_type = open_token.type.replace("_open", "_close")
        index += 1
        items: list[SummaryItem] = []
        while not (tokens[index].type == close_type and tokens[index].level == open_token.level):
            token = tokens[index]
            if token.type != "list_item_open":
                raise SummaryError(f"Unexpected {token.type} inside chapter list.", line=_line(token))
            link, index = self._parse_list_item(index, next_number())
            items.append(link)
        return items, index + 1

    def _parse_list_item(self, index: int, number: SectionNumber) -> tuple[SummaryLink, int]:
        tokens = self._tokens
        open_token = tokens[index]
        index += 1
        link: SummaryLink | None = None
        child_count = 0

        def next_child_number() -> SectionNumber:
            nonlocal child_count
            child_count += 1
            return number.child(child_count)

        while not (tokens[index].type == "list_item_close" and tokens[index].level == open_token.level):
            token = tokens[index]
            if token.type == "paragraph_open" and link is None:
                link = _single_link(tokens[index + 1], line=_line(token))
                link.number = number
                index += 3
            elif token.type in _LIST_OPEN and link is not None:
                children, index = self._parse_list(index, next_child_number)
                link.nested_items.extend(children)
            else:
                raise SummaryError(
                    "Each chapter list item must hold a single link and optional nested list.",
                    line=_line(token),
                )

        if link is None:
            raise SummaryError("Chapter list item is missing a link.", line=_line(open_token))
        return link, index + 1


def _paragraph_links(inline: Token, *, line: int | None) -> list[SummaryLink]:
    links: list[SummaryLink] = []
    children = inline.children or []
    position = 0
    while position < len(children):
        child = children[position]
        if child.type == "link_open":
            link, position = _consume_link(children, position, line=line)
            links.append(link)
            continue
        if child.type in {"softbreak", "hardbreak"} or (child.type == "text" and not child.content.strip()):
            position += 1
            continue
        raise SummaryError("Prefix and suffix chapters must be plain links.", line=line)
    return links


def _single_link(inline: Token, *, line: int | None) -> SummaryLink:
    links = _paragraph_links(inline, line=line)
    if len(links) != 1:
        raise SummaryError("Chapter list items must contain exactly one link.", line=line)
    return links[0]


def _consume_link(children: list[Token], position: int, *, line: int | None) -> tuple[SummaryLink, int]:
    open_token = children[position]
    position += 1
    inner: list[Token] = []
    while children[position].type != "link_close":
        inner.append(children[position])
        position += 1
    title = _inline_text(inner).strip()
    if not title:
        raise SummaryError("Chapter links need a title.", line=line)
    href = str(open_token.attrGet("href") or "")
    return SummaryLink(title=title, location=_normalize_location(href, line=line), line=line), position + 1


def _normalize_location(href: str, *, line: int | None) -> str | None:
    text = href.strip()
    if not text:
        return None
    parts = urlsplit(text)
    if parts.scheme or parts.netloc:
        raise SummaryError(f"Chapter target '{text}' must be a local file.", line=line)
    if parts.query or parts.fragment:
        raise SummaryError(f"Chapter target '{text}' cannot carry a query or fragment.", line=line)
    return unquote(parts.path)


def _inline_text(tokens: list[Token]) -> str:
    pieces: list[str] = []
    for token in tokens:
        if token.type in {"text", "code_inline"}:
            pieces.append(token.content)
        elif token.type in {"softbreak", "hardbreak"}:
            pieces.append(" ")
        elif token.children:
            pieces.append(_inline_text(token.children))
    return "".join(pieces)


def _line(token: Token) -> int | None:
    if token.map:
        return token.map[0] + 1
    return None
