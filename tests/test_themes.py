from __future__ import annotations

import json
from pathlib import Path

import pytest

from quire.themes import BUNDLED_THEME_DIR, ThemeError, ThemeLoader


def test_bundled_theme_provides_required_entrypoints() -> None:
    loader = ThemeLoader()

    assert loader.search_paths == [BUNDLED_THEME_DIR]
    assert set(loader.manifest.entrypoints) >= {"chapter", "print", "not_found"}
    assert loader.assets.local_files() == ["css/book.css", "js/book.js"]
    assert loader.resolve_file("css/book.css") == BUNDLED_THEME_DIR / "css" / "book.css"


def test_user_theme_overrides_templates_and_keeps_bundled_assets(tmp_path: Path) -> None:
    theme_dir = tmp_path / "theme"
    theme_dir.mkdir()
    (theme_dir / "chapter.html").write_text("<main>{{ content | safe }}</main>\n", encoding="utf-8")

    loader = ThemeLoader(theme_dir=theme_dir)

    assert loader.search_paths[0] == theme_dir
    assert loader.render_page("chapter", {"content": "<p>Hi</p>"}) == "<main><p>Hi</p></main>\n"
    assert loader.assets.local_files() == ["css/book.css", "js/book.js"]


def test_user_theme_manifest_merges_with_bundled_manifest(tmp_path: Path) -> None:
    theme_dir = tmp_path / "theme"
    (theme_dir / "css").mkdir(parents=True)
    (theme_dir / "css" / "custom.css").write_text("body {}\n", encoding="utf-8")
    (theme_dir / "theme.json").write_text(
        json.dumps({"name": "custom", "assets": {"styles": ["css/custom.css"], "static": ["fonts/a.woff2"]}}),
        encoding="utf-8",
    )

    loader = ThemeLoader(theme_dir=theme_dir)

    assert loader.manifest.name == "custom"
    assert loader.manifest.entrypoints["chapter"] == "chapter.html"
    assert loader.assets.styles == ["css/custom.css"]
    assert [script.src for script in loader.assets.scripts] == ["js/book.js"]
    assert loader.resolve_file("css/custom.css") == theme_dir / "css" / "custom.css"
    assert loader.resolve_file("fonts/a.woff2") is None


def test_missing_theme_directory_raises(tmp_path: Path) -> None:
    with pytest.raises(ThemeError, match="does not exist"):
        ThemeLoader(theme_dir=tmp_path / "nope")


def test_invalid_theme_manifest_raises(tmp_path: Path) -> None:
    theme_dir = tmp_path / "theme"
    theme_dir.mkdir()
    (theme_dir / "theme.json").write_text("{not json", encoding="utf-8")

    with pytest.raises(ThemeError, match="Cannot read"):
        ThemeLoader(theme_dir=theme_dir)


def test_missing_required_template_raises(tmp_path: Path) -> None:
    bundled = tmp_path / "bundled"
    bundled.mkdir()
    (bundled / "theme.json").write_text(
        json.dumps({"name": "broken", "entrypoints": {"chapter": "chapter.html"}}),
        encoding="utf-8",
    )
    (bundled / "chapter.html").write_text("{{ content }}\n", encoding="utf-8")

    with pytest.raises(ThemeError, match="missing the 'print' entrypoint"):
        ThemeLoader(bundled_dir=bundled)
