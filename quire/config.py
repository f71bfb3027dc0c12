from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import QuireError

CONFIG_FILENAME = "quire.yml"


class ConfigError(QuireError):
    """Raised when the project configuration cannot be parsed or validated."""


class BookMetadata(BaseModel):
    """Descriptive metadata rendered into every page."""

    title: str | None = Field(
        default=None,
        description="Book title; falls back to the manifest heading when unset.",
    )
    authors: list[str] = Field(default_factory=list)
    description: str | None = Field(default=None)
    language: str = Field(default="en")

    @field_validator("authors", mode="before")
    def _ensure_list(cls, value: Any) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return list(value)


class HtmlConfig(BaseModel):
    """Options controlling the rendered HTML bundle."""

    site_url: str | None = Field(
        default=None,
        description="Canonical site URL used for absolute links (e.g., 'https://book.example.com').",
    )
    readme_as_index: bool = Field(
        default=True,
        description="Render README.md chapters as index.html within their directory.",
    )
    print_enabled: bool = Field(default=True, description="Write print.html with every chapter.")
    search_enabled: bool = Field(default=True, description="Write searchindex.json for the theme script.")
    not_found: str = Field(default="404.html", description="Filename for the not-found page.")

    @field_validator("site_url")
    def _strip_trailing_slash(cls, value: str | None) -> str | None:
        if value is None:
            return None
        text = value.strip().rstrip("/")
        return text or None

    @field_validator("not_found")
    def _normalize_not_found(cls, value: str) -> str:
        text = value.strip().lstrip("/")
        if not text:
            raise ValueError("not_found must name a file.")
        return text


class PublishConfig(BaseModel):
    """Settings for uploading the build output to Cloudflare Pages."""

    project_name: str | None = Field(
        default=None,
        description="Pages project name; read from project_name_env when unset.",
    )
    branches: list[str] = Field(
        default_factory=list,
        description="Branches allowed to publish. Empty means every branch.",
    )
    trigger_events: list[str] = Field(
        default_factory=lambda: ["push"],
        description="CI event names that trigger a publish.",
    )
    command: list[str] = Field(
        default_factory=lambda: ["npx", "--yes", "wrangler@3"],
        description="Command prefix used to invoke wrangler.",
    )
    api_token_env: str = Field(default="CLOUDFLARE_API_TOKEN")
    account_id_env: str = Field(default="CLOUDFLARE_ACCOUNT_ID")
    project_name_env: str = Field(default="CLOUDFLARE_PAGES_PROJECT_NAME")

    @field_validator("command", mode="before")
    def _split_command(cls, value: Any) -> list[str]:
        if isinstance(value, str):
            return value.split()
        return list(value)

    @field_validator("command")
    def _require_command(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("publish.command cannot be empty.")
        return value


class Config(BaseModel):
    book: BookMetadata = Field(default_factory=BookMetadata)
    source_dir: Path = Field(default=Path("src"))
    summary_filename: str = Field(default="SUMMARY.md")
    output_dir: Path = Field(default=Path("book"))
    cache_dir: Path = Field(default=Path(".cache"))
    theme_dir: Path | None = Field(
        default=None,
        description="Optional directory whose templates and assets override the bundled theme.",
    )
    html: HtmlConfig = Field(default_factory=HtmlConfig)
    publish: PublishConfig = Field(default_factory=PublishConfig)

    @field_validator("source_dir", "output_dir", "cache_dir", mode="before")
    def _ensure_path(cls, value: Any) -> Path:
        return Path(value)

    @field_validator("theme_dir", mode="before")
    def _ensure_optional_path(cls, value: Any) -> Path | None:
        if value is None or value == "":
            return None
        return Path(value)

    @property
    def summary_path(self) -> Path:
        return self.source_dir / self.summary_filename


def load_config(path: str | Path) -> Config:
    """Load configuration and resolve relative paths based on the config location.

    The ``path`` argument may point to a file (e.g., ``/book/quire.yml``) or a
    directory containing that file. All relative paths inside the configuration
    are interpreted relative to the directory holding the config file.
    """
    candidate = Path(path)
    data: dict[str, Any] = {}
    base_dir: Path
    if candidate.is_dir():
        # A project directory without a config file builds with defaults.
        config_file = candidate / CONFIG_FILENAME
        if config_file.exists():
            data = _read_yaml(config_file)
        base_dir = candidate.resolve()
    else:
        if not candidate.exists():
            raise FileNotFoundError(candidate)
        data = _read_yaml(candidate)
        base_dir = candidate.parent.resolve()

    try:
        cfg = Config(**data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration in {candidate}: {exc}") from exc

    def _abs_required(value: Path) -> Path:
        return value if value.is_absolute() else (base_dir / value).resolve()

    cfg.source_dir = _abs_required(cfg.source_dir)
    cfg.output_dir = _abs_required(cfg.output_dir)
    cfg.cache_dir = _abs_required(cfg.cache_dir)
    if cfg.theme_dir is not None:
        cfg.theme_dir = _abs_required(cfg.theme_dir)

    if cfg.output_dir == cfg.source_dir or cfg.source_dir.is_relative_to(cfg.output_dir):
        raise ConfigError(
            f"output_dir {cfg.output_dir} would overwrite the source directory {cfg.source_dir}."
        )
    # The build report carries a timestamp and must stay out of the published tree.
    if cfg.cache_dir.is_relative_to(cfg.output_dir):
        raise ConfigError(f"cache_dir {cfg.cache_dir} must not live inside output_dir {cfg.output_dir}.")

    return cfg


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Unable to parse {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Configuration {path} must define a mapping at the top level.")
    return data
