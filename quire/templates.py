"""Shared template context used to render book pages with Jinja2."""

from __future__ import annotations

import posixpath
from dataclasses import dataclass
from typing import Any

from .config import Config
from .content import Book, BookItem, Chapter
from .summary import PartTitle
from .themes import ThemeLoader

SEARCH_INDEX_FILENAME = "searchindex.json"
PRINT_FILENAME = "print.html"
# Not-found pages are served for arbitrary request paths, so their links are root-absolute.
NOT_FOUND_ROOT = "/"


@dataclass(slots=True)
class TemplateAssets:
    """Book metadata, navigation and theme resources shared by every page."""

    config: Config
    book: Book
    theme: ThemeLoader

    def __init__(self, config: Config, book: Book, theme: ThemeLoader | None = None) -> None:
        self.config = config
        self.book = book
        self.theme = theme or ThemeLoader(theme_dir=config.theme_dir)

    @staticmethod
    def path_to_root(output_path: str) -> str:
        """Return the relative prefix leading from ``output_path`` back to the site root."""
        depth = output_path.count("/")
        return "./" if depth == 0 else "../" * depth

    def make_asset_href(self, path: str, *, root: str) -> str:
        """Return an href for assets located under the site root."""
        if path.startswith(("http://", "https://", "//")):
            return path
        return f"{root}{path.lstrip('/')}"

    def build_context(
        self,
        *,
        title: str,
        output_path: str,
        active: Chapter | None = None,
        root: str | None = None,
    ) -> dict[str, Any]:
        """Assemble the variables every theme template receives."""
        prefix = root if root is not None else self.path_to_root(output_path)
        bundle = self.theme.assets.to_template_dict()
        scripts: list[dict[str, Any]] = []
        for script in bundle["scripts"]:
            normalized = dict(script)
            normalized["src"] = self.make_asset_href(script["src"], root=prefix)
            scripts.append(normalized)

        html = self.config.html
        metadata = self.config.book
        return {
            "book": {
                "title": self.book.title,
                "authors": list(metadata.authors),
                "description": metadata.description,
                "language": metadata.language,
            },
            "page": {
                "title": title,
                "path": output_path,
                "path_to_root": prefix,
                "canonical_url": self._canonical_url(output_path),
            },
            "toc": self._toc_nodes(self.book.items, active=active, root=prefix),
            "styles": [self.make_asset_href(href, root=prefix) for href in bundle["styles"]],
            "scripts": scripts,
            "search_index": f"{prefix}{SEARCH_INDEX_FILENAME}" if html.search_enabled else None,
            "print_href": f"{prefix}{PRINT_FILENAME}" if html.print_enabled else None,
        }

    def chapter_href(self, chapter: Chapter, *, root: str) -> str | None:
        if chapter.output_path is None:
            return None
        return f"{root}{chapter.output_path}"

    def _toc_nodes(self, items: list[BookItem], *, active: Chapter | None, root: str) -> list[dict[str, Any]]:
        nodes: list[dict[str, Any]] = []
        for item in items:
            if isinstance(item, PartTitle):
                nodes.append({"kind": "part", "title": item.title})
            elif isinstance(item, Chapter):
                nodes.append(
                    {
                        "kind": "chapter",
                        "title": item.title,
                        "number": str(item.number) if item.number is not None else None,
                        "href": self.chapter_href(item, root=root),
                        "active": active is not None and item.source_path == active.source_path and not item.is_draft,
                        "children": self._toc_nodes(item.sub_items, active=active, root=root),
                    }
                )
            else:
                nodes.append({"kind": "separator"})
        return nodes

    def _canonical_url(self, output_path: str) -> str | None:
        site_url = self.config.html.site_url
        if not site_url:
            return None
        return f"{site_url}/{posixpath.normpath(output_path)}"
