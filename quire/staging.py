"""Utilities for preparing the deployable site bundle."""

from __future__ import annotations

import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Collection, Iterable

from .errors import QuireError
from .themes import ThemeError, ThemeLoader

MARKDOWN_SUFFIXES = {".md", ".markdown"}


class StagingError(QuireError):
    """Raised when source files cannot be staged next to the rendered pages."""


@dataclass
class StagingResult:
    """Summary of static assets copied next to the rendered pages."""

    theme_assets: list[Path] = field(default_factory=list)
    source_assets: list[Path] = field(default_factory=list)


def create_staging_directory(output_dir: Path) -> Path:
    """Create an empty sibling directory that receives the next build."""
    output_dir.parent.mkdir(parents=True, exist_ok=True)
    staging_dir = Path(tempfile.mkdtemp(prefix=f".{output_dir.name}-staging-", dir=output_dir.parent))
    # mkdtemp creates 0700 directories; the published tree must stay world-readable.
    staging_dir.chmod(0o755)
    return staging_dir


def promote_staging(staging_dir: Path, output_dir: Path) -> None:
    """Replace the output directory with a completed staging directory."""
    if output_dir.exists():
        _delete_path(output_dir)
    staging_dir.replace(output_dir)


def discard_staging(staging_dir: Path) -> None:
    _delete_path(staging_dir)


def stage_static_assets(
    theme: ThemeLoader,
    source_dir: Path,
    destination: Path,
    *,
    exclude: Iterable[Path] = (),
    reserved: Collection[str] = (),
) -> StagingResult:
    """Copy theme assets and non-markdown source files into ``destination``.

    Theme files are copied first so a source file at the same path wins.
    Source files at a ``reserved`` path (one a rendered page will occupy)
    raise ``StagingError`` before anything from the source tree is copied.
    """
    result = StagingResult()

    for relative in theme.assets.local_files():
        source = theme.resolve_file(relative)
        if source is None:
            raise ThemeError(f"Theme asset '{relative}' not found in the theme directories.")
        target = destination / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source, target)
        result.theme_assets.append(target)

    excluded = [path.resolve() for path in exclude]
    if source_dir.exists():
        sources = list(_iter_source_assets(source_dir, excluded))
        collisions = [
            path.relative_to(source_dir).as_posix()
            for path in sources
            if path.relative_to(source_dir).as_posix() in reserved
        ]
        if collisions:
            listed = ", ".join(collisions)
            raise StagingError(f"Source files would be overwritten by rendered pages: {listed}")
        for path in sources:
            relative_path = path.relative_to(source_dir)
            target = destination / relative_path
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(path, target)
            result.source_assets.append(target)

    return result


def _iter_source_assets(root: Path, excluded: list[Path]) -> Iterable[Path]:
    for path in sorted(root.rglob("*")):
        if not path.is_file():
            continue
        relative = path.relative_to(root)
        if any(part.startswith(".") for part in relative.parts):
            continue
        if path.suffix.lower() in MARKDOWN_SUFFIXES:
            continue
        resolved = path.resolve()
        if any(resolved.is_relative_to(skip) for skip in excluded):
            continue
        yield path


def _delete_path(path: Path) -> None:
    if path.is_dir():
        shutil.rmtree(path)
    else:
        path.unlink(missing_ok=True)
