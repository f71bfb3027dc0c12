"""Search index consumed by the bundled theme's client-side search."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from .content import Book
from .markdown import plain_text
from .templates import SEARCH_INDEX_FILENAME


def build_search_index(book: Book) -> dict[str, Any]:
    documents: list[dict[str, Any]] = []
    for chapter in book.rendered_chapters():
        documents.append(
            {
                "path": chapter.output_path,
                "title": chapter.title,
                "breadcrumbs": list(chapter.parent_titles),
                "body": plain_text(chapter.body),
            }
        )
    return {"book": book.title, "documents": documents}


def write_search_index(book: Book, output_root: Path) -> Path:
    """Serialize the index with sorted keys so repeated builds are byte-identical."""
    target = output_root / SEARCH_INDEX_FILENAME
    payload = json.dumps(build_search_index(book), ensure_ascii=False, sort_keys=True, separators=(",", ":"))
    target.write_text(payload, encoding="utf-8")
    return target
