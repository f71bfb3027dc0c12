from pathlib import Path

import pytest

from quire.config import ConfigError, load_config


def test_directory_without_config_uses_defaults(tmp_path: Path) -> None:
    config = load_config(tmp_path)

    base = tmp_path.resolve()
    assert config.source_dir == base / "src"
    assert config.output_dir == base / "book"
    assert config.cache_dir == base / ".cache"
    assert config.summary_path == base / "src" / "SUMMARY.md"
    assert config.book.title is None
    assert config.html.readme_as_index is True
    assert config.publish.trigger_events == ["push"]
    assert config.publish.command == ["npx", "--yes", "wrangler@3"]


def test_relative_paths_resolve_against_config_file(tmp_path: Path) -> None:
    project = tmp_path / "project"
    project.mkdir()
    config_path = project / "quire.yml"
    config_path.write_text(
        "\n".join(
            [
                "book:",
                "  title: Field Notes",
                "  authors: Ada",
                "source_dir: content",
                "output_dir: dist/site",
                "theme_dir: theme",
                "html:",
                "  site_url: https://notes.example.com/",
                "publish:",
                "  command: wrangler",
                "  branches: [main]",
            ]
        ),
        encoding="utf-8",
    )

    config = load_config(config_path)

    base = project.resolve()
    assert config.source_dir == base / "content"
    assert config.output_dir == base / "dist" / "site"
    assert config.theme_dir == base / "theme"
    assert config.book.title == "Field Notes"
    assert config.book.authors == ["Ada"]
    assert config.html.site_url == "https://notes.example.com"
    assert config.publish.command == ["wrangler"]
    assert config.publish.branches == ["main"]


def test_directory_argument_reads_quire_yml(tmp_path: Path) -> None:
    (tmp_path / "quire.yml").write_text("output_dir: public\n", encoding="utf-8")

    config = load_config(tmp_path)

    assert config.output_dir == tmp_path.resolve() / "public"


def test_missing_config_file_raises_file_not_found(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "missing.yml")


def test_invalid_yaml_raises_config_error(tmp_path: Path) -> None:
    config_path = tmp_path / "quire.yml"
    config_path.write_text("book: [unclosed\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(config_path)


def test_non_mapping_document_raises_config_error(tmp_path: Path) -> None:
    config_path = tmp_path / "quire.yml"
    config_path.write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="mapping"):
        load_config(config_path)


def test_invalid_values_raise_config_error(tmp_path: Path) -> None:
    config_path = tmp_path / "quire.yml"
    config_path.write_text("publish:\n  command: []\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="Invalid configuration"):
        load_config(config_path)


@pytest.mark.parametrize("output_dir", ["src", "."])
def test_output_dir_cannot_contain_sources(tmp_path: Path, output_dir: str) -> None:
    config_path = tmp_path / "quire.yml"
    config_path.write_text(f"source_dir: src\noutput_dir: '{output_dir}'\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="overwrite the source directory"):
        load_config(config_path)


@pytest.mark.parametrize("cache_dir", ["book/.cache", "book"])
def test_cache_dir_cannot_live_inside_output_dir(tmp_path: Path, cache_dir: str) -> None:
    config_path = tmp_path / "quire.yml"
    config_path.write_text(f"output_dir: book\ncache_dir: '{cache_dir}'\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="must not live inside output_dir"):
        load_config(config_path)
