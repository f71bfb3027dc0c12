import json
from pathlib import Path

from quire.content import Book, BookIssue, Chapter, IssueSeverity
from quire.reporting import OutputStats, assemble_report, build_chapter_stats, write_report
from quire.summary import PartTitle, SectionNumber, Separator


def _chapter(title: str, source: str | None, number: tuple[int, ...] | None = None) -> Chapter:
    return Chapter(
        title=title,
        number=SectionNumber(parts=number) if number else None,
        source_path=source,
        output_path=source.replace(".md", ".html") if source else None,
    )


def test_build_chapter_stats_counts_drafts_numbers_and_parts() -> None:
    parent = _chapter("Setup", "setup.md", (1,))
    parent.sub_items = [_chapter("Later", None, (1, 1))]
    book = Book(
        title="Book",
        items=[
            _chapter("Intro", "intro.md"),
            PartTitle(title="Basics"),
            parent,
            Separator(),
            PartTitle(title="Advanced"),
            _chapter("Tuning", "tuning.md", (2,)),
        ],
    )

    stats = build_chapter_stats(book)

    assert stats.total == 4
    assert stats.rendered == 3
    assert stats.drafts == 1
    assert stats.numbered == 3
    assert stats.parts == 2


def test_assemble_and_write_report(tmp_path: Path) -> None:
    book = Book(title="Book", items=[_chapter("Intro", "intro.md")])
    report = assemble_report(
        project="Book",
        duration_seconds=0.25,
        output_dir=tmp_path / "book",
        chapters=build_chapter_stats(book),
        output=OutputStats(pages=4, theme_assets=2, source_assets=1),
        issues=[
            BookIssue("Document is empty.", IssueSeverity.WARNING, "intro.md"),
            BookIssue("Broken", IssueSeverity.ERROR, "SUMMARY.md", 3),
        ],
    )

    target = write_report(report, tmp_path / ".cache")

    assert target == tmp_path / ".cache" / "build-report.json"
    payload = json.loads(target.read_text(encoding="utf-8"))
    assert payload["project"] == "Book"
    assert payload["output"] == {"pages": 4, "theme_assets": 2, "source_assets": 1}
    assert payload["warnings"] == ["intro.md: Document is empty."]
    assert payload["output_dir"] == (tmp_path / "book").as_posix()
