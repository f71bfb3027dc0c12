"""Shared Markdown rendering helpers."""

from __future__ import annotations

import posixpath
import re
from functools import lru_cache, partial
from typing import Any, cast
from urllib.parse import urlsplit, urlunsplit

from markdown_it import MarkdownIt
from markdown_it.rules_core import StateCore
from markdown_it.token import Token
from mdit_py_plugins.anchors import anchors_plugin
from mdit_py_plugins.deflist import deflist_plugin
from mdit_py_plugins.footnote import footnote_plugin
from mdit_py_plugins.tasklists import tasklists_plugin

from .content.models import html_path

_MARKDOWN_LINK_RE = re.compile(r"\.(md|markdown)$", re.IGNORECASE)
_WHITESPACE_RE = re.compile(r"\s+")


@lru_cache(maxsize=2)
def _renderer(readme_as_index: bool) -> MarkdownIt:
    """Configure and cache a CommonMark-compliant renderer."""
    md = MarkdownIt("commonmark", {"html": True, "typographer": True})
    md.enable("table").enable("strikethrough")
    md.use(deflist_plugin)
    md.use(footnote_plugin)
    md.use(tasklists_plugin, label=True)
    md.use(anchors_plugin, min_level=1, max_level=6)
    md.core.ruler.push("chapter_links", partial(_rewrite_links, readme_as_index=readme_as_index))
    md.core.ruler.push("section_ids", _prefix_ids)
    return md


def render_markdown(
    text: str,
    *,
    readme_as_index: bool = True,
    base_dir: str | None = None,
    id_prefix: str | None = None,
) -> str:
    """Render chapter Markdown to HTML.

    Relative links to markdown documents point at their rendered ``.html``
    page. ``base_dir`` re-roots relative links and images for pages that
    collect chapters from other directories (the print page). ``id_prefix``
    namespaces heading ids, footnote ids and same-page ``#fragment`` links so
    several chapters can share one page.
    """
    if not text.strip():
        return ""
    env: dict[str, Any] = {"base_dir": base_dir or ""}
    if id_prefix:
        env["id_prefix"] = id_prefix
        env["docId"] = id_prefix
    return cast(str, _renderer(readme_as_index).render(text, env))


def rewrite_href(href: str, *, readme_as_index: bool = True, base_dir: str = "") -> str:
    """Rewrite a relative document link to the page it renders to."""
    parts = urlsplit(href)
    if parts.scheme or parts.netloc or not parts.path or parts.path.startswith("/"):
        return href
    path = parts.path
    if _MARKDOWN_LINK_RE.search(path):
        path = html_path(_MARKDOWN_LINK_RE.sub(".md", path), readme_as_index=readme_as_index)
    if base_dir:
        path = posixpath.normpath(posixpath.join(base_dir, path))
    return urlunsplit(("", "", path, parts.query, parts.fragment))


def plain_text(text: str) -> str:
    """Collapse a Markdown document into searchable plain text."""
    tokens = _renderer(True).parse(text)
    pieces: list[str] = []
    for token in tokens:
        if token.type == "inline":
            pieces.append("".join(_inline_pieces(token.children or [])))
        elif token.type in {"fence", "code_block"}:
            pieces.append(token.content)
    return _WHITESPACE_RE.sub(" ", " ".join(pieces)).strip()


def _inline_pieces(children: list[Token]) -> list[str]:
    pieces: list[str] = []
    for child in children:
        if child.type in {"text", "code_inline"}:
            pieces.append(child.content)
        elif child.type in {"softbreak", "hardbreak"}:
            pieces.append(" ")
        elif child.children:
            pieces.extend(_inline_pieces(child.children))
    return pieces


def _rewrite_links(state: StateCore, *, readme_as_index: bool) -> None:
    base_dir = str(state.env.get("base_dir") or "")
    for token in state.tokens:
        if token.type != "inline" or not token.children:
            continue
        for child in token.children:
            if child.type == "link_open":
                href = child.attrGet("href")
                if isinstance(href, str):
                    child.attrSet("href", rewrite_href(href, readme_as_index=readme_as_index, base_dir=base_dir))
            elif child.type == "image" and base_dir:
                src = child.attrGet("src")
                if isinstance(src, str):
                    child.attrSet("src", rewrite_href(src, readme_as_index=readme_as_index, base_dir=base_dir))


def _prefix_ids(state: StateCore) -> None:
    prefix = state.env.get("id_prefix")
    if not prefix:
        return
    for token in state.tokens:
        if token.type == "heading_open":
            ident = token.attrGet("id")
            if isinstance(ident, str) and ident:
                token.attrSet("id", f"{prefix}-{ident}")
        elif token.type == "inline" and token.children:
            for child in token.children:
                if child.type != "link_open":
                    continue
                href = child.attrGet("href")
                if isinstance(href, str) and href.startswith("#") and len(href) > 1:
                    child.attrSet("href", f"#{prefix}-{href[1:]}")
