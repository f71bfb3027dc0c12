"""Lint diagnostics for the manifest and the documents it references."""

from __future__ import annotations

from dataclasses import dataclass, field

from .config import Config
from .content import BookIssue, IssueSeverity, resolve_book
from .summary import SummaryError, load_summary


@dataclass(slots=True)
class LintReport:
    """Aggregate lint results for a book."""

    issues: list[BookIssue] = field(default_factory=list)
    chapter_count: int = 0

    def add(self, issue: BookIssue) -> None:
        self.issues.append(issue)

    @property
    def error_count(self) -> int:
        return sum(1 for issue in self.issues if issue.severity is IssueSeverity.ERROR)

    @property
    def warning_count(self) -> int:
        return sum(1 for issue in self.issues if issue.severity is IssueSeverity.WARNING)


def lint_book(config: Config) -> LintReport:
    """Check the manifest and documents without writing any output."""
    report = LintReport()
    try:
        summary = load_summary(config.summary_path)
    except SummaryError as exc:
        report.add(
            BookIssue(
                message=exc.detail,
                severity=IssueSeverity.ERROR,
                source_path=config.summary_filename,
                line=exc.line,
            )
        )
        return report

    book, issues = resolve_book(summary, config)
    for issue in issues:
        report.add(issue)
    report.chapter_count = sum(1 for _ in book.iter_chapters())
    if not book.rendered_chapters() and report.error_count == 0:
        report.add(
            BookIssue(
                message="Manifest lists no chapters with documents.",
                severity=IssueSeverity.ERROR,
                source_path=config.summary_filename,
            )
        )
    return report
