"""Scaffolding for new book projects."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import yaml

from .config import CONFIG_FILENAME
from .errors import QuireError

WORKFLOW_PATH = Path(".github") / "workflows" / "deploy.yml"
REQUIREMENTS_PATH = Path("requirements.txt")


class ScaffoldError(QuireError):
    """Raised when scaffolding cannot continue."""


@dataclass(slots=True)
class ScaffoldResult:
    """Details about filesystem writes performed during scaffolding."""

    created: list[Path] = field(default_factory=list)
    updated: list[Path] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)

    def record(self, path: Path, existed: bool) -> None:
        if existed:
            self.updated.append(path)
        else:
            self.created.append(path)


def scaffold_book(
    directory: Path,
    *,
    title: str | None = None,
    ci: bool = False,
    requirement: str | None = None,
    force: bool = False,
) -> ScaffoldResult:
    """Create a minimal book project under ``directory``.

    With ``ci`` the project also gets a deploy workflow and a
    ``requirements.txt`` pinning ``requirement``: the pip requirement CI
    installs quire from (a VCS URL, a wheel URL or an index name).

    Existing files are left alone unless ``force`` is set, in which case they
    are overwritten and reported as updated.
    """
    title = (title or "").strip() or _title_from_directory(directory)
    files: list[tuple[Path, str]] = [
        (Path(CONFIG_FILENAME), _render_config(title)),
        (Path("src") / "SUMMARY.md", _render_summary(title)),
        (Path("src") / "chapter_1.md", "# Chapter 1\n\nStart writing here.\n"),
        (Path(".gitignore"), "book/\n.cache/\n"),
    ]
    if ci:
        requirement = (requirement or "").strip()
        if not requirement:
            raise ScaffoldError("A deploy workflow needs the pip requirement CI installs quire from (--requirement).")
        if "\n" in requirement or "\r" in requirement:
            raise ScaffoldError("The quire requirement must be a single line.")
        files.append((REQUIREMENTS_PATH, f"{requirement}\n"))
        files.append((WORKFLOW_PATH, _render_workflow()))

    conflicts = [relative for relative, _ in files if (directory / relative).exists()]
    if conflicts and not force:
        listed = ", ".join(path.as_posix() for path in conflicts)
        raise ScaffoldError(f"Refusing to overwrite existing files: {listed}. Use --force to replace them.")

    result = ScaffoldResult()
    for relative, content in files:
        path = directory / relative
        result.record(path, _write_text(path, content))

    result.notes.append("Run 'quire build' to render the book into book/.")
    if ci:
        result.notes.append(
            "Add CLOUDFLARE_API_TOKEN, CLOUDFLARE_ACCOUNT_ID and CLOUDFLARE_PAGES_PROJECT_NAME "
            "as repository secrets before pushing."
        )
    return result


def _title_from_directory(directory: Path) -> str:
    name = directory.resolve().name.replace("-", " ").replace("_", " ").strip()
    return name.title() if name else "My Book"


def _render_config(title: str) -> str:
    data = {
        "book": {"title": title, "authors": [], "language": "en"},
        "source_dir": "src",
        "output_dir": "book",
        "publish": {"branches": ["main"]},
    }
    return yaml.safe_dump(data, sort_keys=False, allow_unicode=True)


def _render_summary(title: str) -> str:
    return f"# {title}\n\n- [Chapter 1](chapter_1.md)\n"


def _render_workflow() -> str:
    return (
        "name: Deploy book\n"
        "\n"
        "on:\n"
        "  push:\n"
        "    branches: [main]\n"
        "\n"
        "jobs:\n"
        "  deploy:\n"
        "    name: Deploy to Cloudflare Pages\n"
        "    runs-on: ubuntu-latest\n"
        "    permissions:\n"
        "      contents: read\n"
        "      deployments: write\n"
        "    steps:\n"
        "      - name: Checkout sources\n"
        "        uses: actions/checkout@v4\n"
        "      - uses: actions/setup-python@v5\n"
        "        with:\n"
        '          python-version: "3.12"\n'
        "      - uses: actions/setup-node@v4\n"
        "        with:\n"
        '          node-version: "20"\n'
        "      - name: Install quire\n"
        "        run: pip install -r requirements.txt\n"
        "      - name: Build and publish\n"
        "        run: quire deploy\n"
        "        env:\n"
        "          CLOUDFLARE_API_TOKEN: ${{ secrets.CLOUDFLARE_API_TOKEN }}\n"
        "          CLOUDFLARE_ACCOUNT_ID: ${{ secrets.CLOUDFLARE_ACCOUNT_ID }}\n"
        "          CLOUDFLARE_PAGES_PROJECT_NAME: ${{ secrets.CLOUDFLARE_PAGES_PROJECT_NAME }}\n"
    )


def _write_text(path: Path, content: str) -> bool:
    path.parent.mkdir(parents=True, exist_ok=True)
    existed = path.exists()
    path.write_text(content, encoding="utf-8")
    return existed
