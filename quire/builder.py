"""Build pipeline: manifest + content tree in, static site directory out."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path

from jinja2 import TemplateError

from .config import Config
from .content import Book, BookIssue, BookValidationError, IssueSeverity, load_book
from .errors import QuireError
from .pages import PageWriteResult, planned_page_paths, write_book_pages
from .reporting import BuildReport, OutputStats, assemble_report, build_chapter_stats, write_report
from .search import write_search_index
from .staging import (
    StagingResult,
    create_staging_directory,
    discard_staging,
    promote_staging,
    stage_static_assets,
)
from .templates import TemplateAssets
from .themes import ThemeLoader

logger = logging.getLogger(__name__)


class BuildError(QuireError):
    """Raised when rendering or writing the site fails."""


@dataclass(slots=True)
class BuildResult:
    """Outputs of a successful build."""

    book: Book
    output_dir: Path
    pages: PageWriteResult
    staging: StagingResult
    report: BuildReport
    report_path: Path
    search_index: Path | None = None
    issues: list[BookIssue] = field(default_factory=list)

    @property
    def warnings(self) -> list[BookIssue]:
        return [issue for issue in self.issues if issue.severity is IssueSeverity.WARNING]


def build_book(config: Config) -> BuildResult:
    """Render the book described by ``config`` into ``config.output_dir``.

    The manifest is validated before anything is written. Pages are rendered
    into a staging directory that replaces the output directory only after
    every page and asset and the build report have been written, so a failed
    build never leaves a partial site behind.
    """
    start = time.perf_counter()
    book, issues = load_book(config)
    if not book.rendered_chapters():
        raise BookValidationError(
            [BookIssue("Manifest lists no chapters with documents.", IssueSeverity.ERROR, config.summary_filename)]
        )

    theme = ThemeLoader(theme_dir=config.theme_dir)
    assets = TemplateAssets(config, book, theme)

    output_dir = config.output_dir
    try:
        staging_dir = create_staging_directory(output_dir)
    except OSError as exc:
        raise BuildError(f"Unable to create a staging directory next to {output_dir}: {exc}") from exc
    logger.debug("Rendering %s into staging directory %s", book.title, staging_dir)

    promoted = False
    try:
        staged = stage_static_assets(
            theme,
            config.source_dir,
            staging_dir,
            exclude=(output_dir, config.cache_dir),
            reserved=planned_page_paths(assets),
        )
        pages = write_book_pages(assets, staging_dir)
        search_index = write_search_index(book, staging_dir) if config.html.search_enabled else None

        report = assemble_report(
            project=book.title,
            duration_seconds=time.perf_counter() - start,
            output_dir=output_dir,
            chapters=build_chapter_stats(book),
            output=OutputStats(
                pages=len(pages.all_pages),
                theme_assets=len(staged.theme_assets),
                source_assets=len(staged.source_assets),
            ),
            issues=issues,
        )
        report_path = write_report(report, config.cache_dir)

        try:
            promote_staging(staging_dir, output_dir)
        except OSError as exc:
            raise BuildError(f"Unable to replace {output_dir}: {exc}") from exc
        promoted = True
    except (OSError, TemplateError) as exc:
        raise BuildError(f"Failed to render {book.title}: {exc}") from exc
    finally:
        if not promoted:
            discard_staging(staging_dir)

    pages = _relocate(pages, staging_dir, output_dir)
    staged = StagingResult(
        theme_assets=[output_dir / path.relative_to(staging_dir) for path in staged.theme_assets],
        source_assets=[output_dir / path.relative_to(staging_dir) for path in staged.source_assets],
    )
    if search_index is not None:
        search_index = output_dir / search_index.relative_to(staging_dir)

    logger.info("Built %d page(s) into %s", len(pages.all_pages), output_dir)

    return BuildResult(
        book=book,
        output_dir=output_dir,
        pages=pages,
        staging=staged,
        report=report,
        report_path=report_path,
        search_index=search_index,
        issues=issues,
    )


def _relocate(pages: PageWriteResult, staging_dir: Path, output_dir: Path) -> PageWriteResult:
    def move(path: Path | None) -> Path | None:
        if path is None:
            return None
        return output_dir / path.relative_to(staging_dir)

    return PageWriteResult(
        chapter_pages=[output_dir / path.relative_to(staging_dir) for path in pages.chapter_pages],
        index_page=move(pages.index_page),
        print_page=move(pages.print_page),
        not_found_page=move(pages.not_found_page),
    )
