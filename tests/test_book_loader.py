from __future__ import annotations

from pathlib import Path

import pytest

from quire.config import Config, load_config
from quire.content import BookValidationError, IssueSeverity, load_book, resolve_book
from quire.summary import load_summary


def _write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def _project(tmp_path: Path, summary: str, documents: dict[str, str]) -> Config:
    _write(tmp_path / "src" / "SUMMARY.md", summary)
    for relative, body in documents.items():
        _write(tmp_path / "src" / relative, body)
    return load_config(tmp_path)


def test_load_book_resolves_chapters_in_manifest_order(tmp_path: Path) -> None:
    config = _project(
        tmp_path,
        "# Handbook\n\n[Welcome](README.md)\n\n- [Setup](setup.md)\n  - [Tools](setup/tools.md)\n- [Usage](usage.md)\n",
        {
            "README.md": "# Welcome\n",
            "setup.md": "# Setup\n",
            "setup/tools.md": "# Tools\n",
            "usage.md": "# Usage\n",
        },
    )

    book, issues = load_book(config)

    assert book.title == "Handbook"
    assert issues == []
    chapters = book.rendered_chapters()
    assert [chapter.source_path for chapter in chapters] == [
        "README.md",
        "setup.md",
        "setup/tools.md",
        "usage.md",
    ]
    assert [chapter.output_path for chapter in chapters] == [
        "index.html",
        "setup.html",
        "setup/tools.html",
        "usage.html",
    ]
    assert chapters[2].parent_titles == ["Setup"]
    assert chapters[2].display_title == "1.1. Tools"
    assert chapters[1].body == "# Setup\n"


def test_config_title_overrides_manifest_heading(tmp_path: Path) -> None:
    _write(tmp_path / "quire.yml", "book:\n  title: Configured Title\n")
    config = _project(tmp_path, "# Manifest Title\n\n- [A](a.md)\n", {"a.md": "A\n"})

    book, _ = load_book(config)

    assert book.title == "Configured Title"


def test_book_title_falls_back_when_manifest_has_no_heading(tmp_path: Path) -> None:
    config = _project(tmp_path, "- [A](a.md)\n", {"a.md": "A\n"})

    book, _ = load_book(config)

    assert book.title == "Untitled Book"


def test_missing_document_fails_validation(tmp_path: Path) -> None:
    config = _project(tmp_path, "# Book\n\n- [A](a.md)\n- [C](c.md)\n", {"a.md": "A\n"})

    with pytest.raises(BookValidationError) as excinfo:
        load_book(config)

    assert len(excinfo.value.issues) == 1
    issue = excinfo.value.issues[0]
    assert issue.line == 4
    assert issue.source_path == "SUMMARY.md"
    assert "references missing document 'c.md'" in issue.message
    assert "SUMMARY.md:4" in str(excinfo.value)


def test_duplicate_document_is_an_error(tmp_path: Path) -> None:
    config = _project(tmp_path, "- [A](a.md)\n- [Again](a.md)\n", {"a.md": "A\n"})

    with pytest.raises(BookValidationError) as excinfo:
        load_book(config)

    assert "listed more than once (first listed on line 1)" in excinfo.value.issues[0].message


def test_document_outside_source_dir_is_an_error(tmp_path: Path) -> None:
    _write(tmp_path / "outside.md", "secret\n")
    config = _project(tmp_path, "- [Escape](../outside.md)\n", {})

    with pytest.raises(BookValidationError) as excinfo:
        load_book(config)

    assert "outside the source directory" in excinfo.value.issues[0].message


def test_non_markdown_target_is_an_error(tmp_path: Path) -> None:
    config = _project(tmp_path, "- [Picture](cover.png)\n", {"cover.png": "png"})

    with pytest.raises(BookValidationError) as excinfo:
        load_book(config)

    assert "must reference a markdown document" in excinfo.value.issues[0].message


def test_resolve_book_reports_warnings_without_failing(tmp_path: Path) -> None:
    config = _project(
        tmp_path,
        "- [A](a.md)\n- [Someday]()\n",
        {"a.md": "   \n", "notes/unused.md": "Not listed\n", ".hidden/skip.md": "hidden\n"},
    )

    book, issues = resolve_book(load_summary(config.summary_path), config)

    assert all(issue.severity is IssueSeverity.WARNING for issue in issues)
    by_source = {(issue.source_path, issue.message) for issue in issues}
    assert ("a.md", "Document is empty.") in by_source
    assert ("notes/unused.md", "Document is not listed in the manifest and will not be rendered.") in by_source
    assert not any(issue.source_path.startswith(".hidden") for issue in issues)
    assert any("Draft chapter 'Someday'" in issue.message for issue in issues)
    assert [chapter.title for chapter in book.iter_chapters()] == ["A", "Someday"]
    assert [chapter.title for chapter in book.rendered_chapters()] == ["A"]


def test_readme_as_index_can_be_disabled(tmp_path: Path) -> None:
    _write(tmp_path / "quire.yml", "html:\n  readme_as_index: false\n")
    config = _project(tmp_path, "- [Intro](guide/README.md)\n", {"guide/README.md": "Intro\n"})

    book, _ = load_book(config)

    assert book.rendered_chapters()[0].output_path == "guide/README.html"
