"""Build reporting helpers for quire."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

from pydantic import BaseModel, Field

from .content import Book, BookIssue, IssueSeverity
from .summary import PartTitle

REPORT_FILENAME = "build-report.json"


class ChapterStats(BaseModel):
    total: int
    rendered: int
    drafts: int
    numbered: int
    parts: int


class OutputStats(BaseModel):
    pages: int
    theme_assets: int
    source_assets: int


class BuildReport(BaseModel):
    project: str
    generated_at: datetime
    duration_seconds: float
    output_dir: str
    chapters: ChapterStats
    output: OutputStats
    warnings: list[str] = Field(default_factory=list)


def build_chapter_stats(book: Book) -> ChapterStats:
    total = rendered = drafts = numbered = 0
    for chapter in book.iter_chapters():
        total += 1
        if chapter.is_draft:
            drafts += 1
        else:
            rendered += 1
        if chapter.number is not None:
            numbered += 1
    parts = sum(1 for item in book.items if isinstance(item, PartTitle))
    return ChapterStats(total=total, rendered=rendered, drafts=drafts, numbered=numbered, parts=parts)


def assemble_report(
    *,
    project: str,
    duration_seconds: float,
    output_dir: Path,
    chapters: ChapterStats,
    output: OutputStats,
    issues: Iterable[BookIssue] = (),
) -> BuildReport:
    warnings = [
        f"{issue.location}: {issue.message}" for issue in issues if issue.severity is IssueSeverity.WARNING
    ]
    return BuildReport(
        project=project,
        generated_at=datetime.now(timezone.utc),
        duration_seconds=duration_seconds,
        output_dir=output_dir.as_posix(),
        chapters=chapters,
        output=output,
        warnings=warnings,
    )


def write_report(report: BuildReport, directory: Path) -> Path:
    """Write the report outside the site bundle so page output stays reproducible."""
    directory.mkdir(parents=True, exist_ok=True)
    target = directory / REPORT_FILENAME
    with target.open("w", encoding="utf-8") as handle:
        json.dump(report.model_dump(mode="json"), handle, ensure_ascii=False, indent=2)
    return target
