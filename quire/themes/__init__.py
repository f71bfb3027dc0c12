"""Theme loading and rendering utilities for quire."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Sequence

from jinja2 import Environment, FileSystemLoader, TemplateNotFound, select_autoescape
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..errors import QuireError

logger = logging.getLogger(__name__)

MANIFEST_FILENAME = "theme.json"
BUNDLED_THEME_DIR = Path(__file__).resolve().parent / "default"
REQUIRED_ENTRYPOINTS = ("chapter", "print", "not_found")


class ThemeError(QuireError):
    """Raised when the book theme is unusable: bad manifest, missing template."""


class ScriptAsset(BaseModel):
    """A ``<script>`` tag emitted on every book page."""

    model_config = ConfigDict(populate_by_name=True)

    src: str = Field(...)
    type: str | None = Field(default=None)
    defer: bool = Field(default=False)
    async_: bool = Field(default=False, alias="async")

    def to_template_dict(self) -> dict[str, Any]:
        return {
            "src": self.src,
            "type": self.type,
            "defer": self.defer,
            "async": self.async_,
        }


class ThemeAssets(BaseModel):
    """Stylesheets, scripts and extra files a theme ships alongside its templates."""

    styles: list[str] = Field(default_factory=list)
    scripts: list[ScriptAsset] = Field(default_factory=list)
    static: list[str] = Field(
        default_factory=list,
        description="Extra files copied into the output (fonts, icons).",
    )

    def merge_with(self, fallback: "ThemeAssets | None") -> "ThemeAssets":
        if fallback is None:
            return ThemeAssets(styles=list(self.styles), scripts=list(self.scripts), static=list(self.static))
        styles = list(self.styles) if self.styles else list(fallback.styles)
        scripts = list(self.scripts) if self.scripts else list(fallback.scripts)
        static = sorted({*fallback.static, *self.static})
        return ThemeAssets(styles=styles, scripts=scripts, static=static)

    def local_files(self) -> list[str]:
        """Theme-relative paths that must be staged into the output."""
        candidates = [*self.styles, *(script.src for script in self.scripts), *self.static]
        files = {path.lstrip("/") for path in candidates if not _is_remote(path)}
        return sorted(files)

    def to_template_dict(self) -> dict[str, Any]:
        return {
            "styles": list(self.styles),
            "scripts": [script.to_template_dict() for script in self.scripts],
        }


class ThemeManifest(BaseModel):
    """Parsed ``theme.json``: entrypoint templates keyed by page kind, plus assets."""

    model_config = ConfigDict(extra="ignore")

    name: str = Field(default="unnamed")
    version: str | None = Field(default=None)
    entrypoints: dict[str, str] = Field(default_factory=dict)
    assets: ThemeAssets = Field(default_factory=ThemeAssets)

    def merge_with(self, fallback: "ThemeManifest | None") -> "ThemeManifest":
        if fallback is None:
            return self
        return ThemeManifest(
            name=self.name or fallback.name,
            version=self.version or fallback.version,
            entrypoints={**fallback.entrypoints, **self.entrypoints},
            assets=self.assets.merge_with(fallback.assets),
        )


class ThemeLoader:
    """Load the bundled theme, layered under an optional user theme directory."""

    def __init__(self, *, theme_dir: Path | None = None, bundled_dir: Path = BUNDLED_THEME_DIR) -> None:
        self._theme_dir = theme_dir
        self._bundled_dir = bundled_dir
        self._search_paths: list[Path] = []
        self._environment: Environment | None = None
        self._manifest: ThemeManifest | None = None
        self._load()

    @property
    def manifest(self) -> ThemeManifest:
        assert self._manifest is not None  # pragma: no cover - construction guarantees
        return self._manifest

    @property
    def assets(self) -> ThemeAssets:
        return self.manifest.assets

    @property
    def environment(self) -> Environment:
        assert self._environment is not None  # pragma: no cover - construction guarantees
        return self._environment

    @property
    def search_paths(self) -> list[Path]:
        return list(self._search_paths)

    def render_page(self, key: str, context: dict[str, Any]) -> str:
        template_path = self.manifest.entrypoints.get(key)
        if not template_path:
            raise ThemeError(f"Theme '{self.manifest.name}' does not define an entrypoint named '{key}'.")
        template = self.environment.get_template(template_path)
        return template.render(**context)

    def resolve_file(self, relative: str) -> Path | None:
        """Return the first theme file matching ``relative``, user theme first."""
        for root in self._search_paths:
            candidate = root / relative
            if candidate.is_file():
                return candidate
        return None

    def ensure_templates(self, template_keys: Sequence[str]) -> None:
        for key in template_keys:
            template_path = self.manifest.entrypoints.get(key)
            if not template_path:
                raise ThemeError(f"Theme '{self.manifest.name}' is missing the '{key}' entrypoint.")
            try:
                self.environment.get_template(template_path)
            except TemplateNotFound as exc:
                raise ThemeError(
                    f"Required template '{template_path}' not found in {self._describe_paths()}."
                ) from exc

    def _load(self) -> None:
        bundled_manifest = self._load_manifest(self._bundled_dir)
        if bundled_manifest is None:
            raise ThemeError(f"Bundled theme is missing {MANIFEST_FILENAME} at {self._bundled_dir}.")

        manifest = bundled_manifest
        search_paths = [self._bundled_dir]
        if self._theme_dir is not None:
            if not self._theme_dir.is_dir():
                raise ThemeError(f"Theme directory '{self._theme_dir}' does not exist.")
            override = self._load_manifest(self._theme_dir)
            if override is not None:
                manifest = override.merge_with(bundled_manifest)
            else:
                logger.debug("No %s in %s; overriding templates only.", MANIFEST_FILENAME, self._theme_dir)
            search_paths.insert(0, self._theme_dir)

        environment = Environment(
            loader=FileSystemLoader([str(path) for path in search_paths]),
            autoescape=select_autoescape(["html", "xml"]),
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )
        environment.globals["theme"] = {"name": manifest.name, "version": manifest.version}

        self._search_paths = search_paths
        self._environment = environment
        self._manifest = manifest
        self.ensure_templates(REQUIRED_ENTRYPOINTS)

    def _load_manifest(self, theme_dir: Path) -> ThemeManifest | None:
        manifest_path = theme_dir / MANIFEST_FILENAME
        if not manifest_path.exists():
            return None
        try:
            data = json.loads(manifest_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise ThemeError(f"Cannot read {manifest_path}: {exc}") from exc
        try:
            return ThemeManifest.model_validate(data)
        except ValidationError as exc:
            raise ThemeError(f"Invalid theme manifest {manifest_path}: {exc}") from exc

    def _describe_paths(self) -> str:
        return ", ".join(path.as_posix() for path in self._search_paths)


def _is_remote(path: str) -> bool:
    return path.startswith(("http://", "https://", "//"))
