from pathlib import Path

from quire.config import load_config
from quire.content import IssueSeverity
from quire.validation import lint_book


def _write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def test_lint_book_collects_errors_and_warnings(tmp_path: Path) -> None:
    _write(tmp_path / "src" / "SUMMARY.md", "- [A](a.md)\n- [Missing](missing.md)\n- [Draft]()\n")
    _write(tmp_path / "src" / "a.md", "# A\n")
    _write(tmp_path / "src" / "orphan.md", "# Orphan\n")

    report = lint_book(load_config(tmp_path))

    assert report.chapter_count == 3
    assert report.error_count == 1
    assert report.warning_count == 2
    error = next(issue for issue in report.issues if issue.severity is IssueSeverity.ERROR)
    assert error.location == "SUMMARY.md:2"


def test_lint_book_reports_manifest_syntax_errors(tmp_path: Path) -> None:
    _write(tmp_path / "src" / "SUMMARY.md", "# Book\n\n- [Remote](https://example.com)\n")

    report = lint_book(load_config(tmp_path))

    assert report.error_count == 1
    assert report.issues[0].line == 3
    assert "must be a local file" in report.issues[0].message
    assert not report.issues[0].message.startswith("line")


def test_lint_book_reports_missing_manifest(tmp_path: Path) -> None:
    report = lint_book(load_config(tmp_path))

    assert report.error_count == 1
    assert "Manifest not found" in report.issues[0].message


def test_lint_book_requires_at_least_one_rendered_chapter(tmp_path: Path) -> None:
    _write(tmp_path / "src" / "SUMMARY.md", "- [Later]()\n")

    report = lint_book(load_config(tmp_path))

    assert report.error_count == 1
    assert report.warning_count == 1
    assert any("no chapters with documents" in issue.message for issue in report.issues)


def test_lint_book_clean_project_has_no_issues(tmp_path: Path) -> None:
    _write(tmp_path / "src" / "SUMMARY.md", "# Book\n\n- [A](a.md)\n")
    _write(tmp_path / "src" / "a.md", "# A\n")

    report = lint_book(load_config(tmp_path))

    assert report.issues == []
    assert report.chapter_count == 1
    assert not (tmp_path / "book").exists()
