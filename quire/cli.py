"""CLI entrypoints for quire book tooling."""

import os
import shutil
import webbrowser
from pathlib import Path
from typing import Annotated

import typer
from rich.markup import escape

from .builder import BuildResult, build_book
from .config import Config, ConfigError, load_config
from .content import BookIssue, IssueSeverity
from .errors import QuireError
from .logging_setup import configure_logging, console
from .pipeline import TriggerEvent, run_pipeline
from .preview_server import make_request_handler, serve as serve_directory
from .publish import PublishCredentials, PublishResult, publish_site
from .scaffold import ScaffoldResult, scaffold_book
from .validation import lint_book
from .verify import VerificationReport, verify_site

app = typer.Typer(help="Build a markdown book into a static site and publish it.")

ConfigPathOption = Annotated[
    str,
    typer.Option("--config", "-c", help="Path to quire.yml or the book directory."),
]
BranchOption = Annotated[
    str | None,
    typer.Option("--branch", "-b", help="Branch name passed to the hosting provider."),
]


@app.callback()
def main(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show debug logging."),
    ] = False,
) -> None:
    configure_logging(verbose=verbose)


@app.command()
def init(
    directory: Annotated[
        Path,
        typer.Argument(help="Directory to create the book in."),
    ] = Path("."),
    title: Annotated[
        str | None,
        typer.Option("--title", "-t", help="Book title; defaults to the directory name."),
    ] = None,
    ci: Annotated[
        bool,
        typer.Option("--ci", help="Also write a GitHub Actions workflow that deploys on push."),
    ] = False,
    requirement: Annotated[
        str | None,
        typer.Option(
            "--requirement",
            "-r",
            help="pip requirement the CI workflow installs quire from, e.g. 'quire @ git+https://...'.",
        ),
    ] = None,
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Overwrite existing files if they already exist."),
    ] = False,
) -> None:
    """Create a new book project with a manifest and a first chapter."""
    try:
        result = scaffold_book(directory, title=title, ci=ci, requirement=requirement, force=force)
    except QuireError as exc:
        console.print(f"[bold red]Cannot scaffold[/]: {escape(str(exc))}")
        raise typer.Exit(code=1) from exc
    _print_scaffold_summary(directory, result)


@app.command()
def build(
    config_path: ConfigPathOption = ".",
    output_dir: Annotated[
        Path | None,
        typer.Option("--output-dir", "-o", help="Override the configured output directory."),
    ] = None,
) -> None:
    """Render the book into the output directory."""
    config = _load(config_path, output_dir=output_dir)
    result = _run_build(config)
    _print_build_summary(result)


@app.command()
def check(
    config_path: ConfigPathOption = ".",
    strict: Annotated[
        bool,
        typer.Option("--strict", help="Treat warnings as errors."),
    ] = False,
) -> None:
    """Validate the manifest and chapter documents without writing output."""
    config = _load(config_path)
    report = lint_book(config)

    if not report.issues:
        console.print(f"[bold green]Check clean[/]: {report.chapter_count} chapter(s), no issues detected.")
        raise typer.Exit()

    for issue in sorted(report.issues, key=_issue_sort_key):
        style = "red" if issue.severity is IssueSeverity.ERROR else "yellow"
        console.print(f"[bold {style}]{issue.severity.name}[/] {issue.location} - {issue.message}")

    console.print(
        f"[bold blue]Summary[/]: {report.error_count} error(s), {report.warning_count} warning(s) "
        f"across {report.chapter_count} chapter(s)."
    )

    exit_code = 0
    if report.error_count > 0 or (strict and report.warning_count > 0):
        exit_code = 1
    raise typer.Exit(code=exit_code)


@app.command()
def verify(
    config_path: ConfigPathOption = ".",
    report_path: Annotated[
        str | None,
        typer.Option(
            "--report",
            "-r",
            help="Optional path to write a text report summarizing verification findings.",
        ),
    ] = None,
) -> None:
    """Scan the built site for broken links, missing assets and missing anchors."""
    config = _load(config_path)
    output_dir = config.output_dir

    if not output_dir.exists():
        console.print(f"[bold red]Site directory not found[/]: {_display_path(output_dir)}")
        console.print("Run 'quire build' before verifying.")
        raise typer.Exit(code=1)

    console.print(f"[bold blue]Verifying[/]: scanning HTML files under {_display_path(output_dir)}")
    report = verify_site(output_dir, skip={config.html.not_found})
    _print_verification_report(report)

    if report_path:
        target = Path(report_path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(_render_verification_text(report, output_dir), encoding="utf-8")
            console.print(f"[bold green]Report written[/]: {_display_path(target)}")
        except OSError as exc:
            console.print(f"[bold red]Failed to write report[/]: {escape(str(exc))}")
            raise typer.Exit(code=1) from exc

    raise typer.Exit(code=1 if report.error_count > 0 else 0)


@app.command()
def serve(
    config_path: ConfigPathOption = ".",
    host: Annotated[
        str,
        typer.Option("--host", help="Host interface to bind the preview server."),
    ] = "127.0.0.1",
    port: Annotated[
        int,
        typer.Option("--port", "-p", help="Port for the preview server."),
    ] = 3000,
    open_browser: Annotated[
        bool,
        typer.Option(
            "--open-browser/--no-open-browser",
            help="Automatically open the book in a browser after starting.",
        ),
    ] = False,
) -> None:
    """Build the book, then serve it over HTTP for local preview."""
    if port < 0 or port > 65535:
        raise typer.BadParameter("Port must be between 0 and 65535.")
    config = _load(config_path)
    result = _run_build(config)
    _print_build_summary(result)

    handler = make_request_handler(result.output_dir, not_found=config.html.not_found)
    try:
        with serve_directory(host, port, handler) as server:
            raw_host = server.server_address[0]
            bound_host = (
                raw_host.decode("utf-8", "ignore") if isinstance(raw_host, bytes) else str(raw_host)
            )
            bound_port = int(server.server_address[1])
            url_host = "127.0.0.1" if bound_host in {"0.0.0.0", ""} else bound_host
            site_url = f"http://{url_host}:{bound_port}/"
            console.print(
                f"[bold green]Preview server[/]: serving {_display_path(result.output_dir)} at {site_url} "
                "(press Ctrl+C to stop)"
            )
            if open_browser:
                webbrowser.open(site_url)
            try:
                server.serve_forever()
            except KeyboardInterrupt:
                console.print("\n[bold yellow]Stopping preview server...[/]")
    except OSError as exc:
        console.print(f"[bold red]Failed to start preview server[/]: {escape(str(exc))}")
        raise typer.Exit(code=1) from exc


@app.command()
def clean(
    config_path: ConfigPathOption = ".",
    include_cache: Annotated[
        bool,
        typer.Option("--cache", help="Also remove the configured cache directory."),
    ] = False,
) -> None:
    """Remove the built site (and optionally the cache directory)."""
    config = _load(config_path)
    targets: list[tuple[str, Path]] = [("site output", config.output_dir)]
    if include_cache:
        targets.append(("cache", config.cache_dir))

    removed = 0
    for label, path in targets:
        if path.exists():
            console.print(f"[bold green]Removing[/]: {label} ({_display_path(path)})")
            _remove_path(path)
            removed += 1
        else:
            console.print(f"[bold yellow]Skipping[/]: {label} ({_display_path(path)}) not found")

    noun = "directory" if removed == 1 else "directories"
    console.print(f"[bold green]Clean complete[/]: removed {removed} {noun}.")


@app.command()
def publish(
    config_path: ConfigPathOption = ".",
    branch: BranchOption = None,
) -> None:
    """Upload an existing build to Cloudflare Pages."""
    config = _load(config_path)
    try:
        credentials = PublishCredentials.from_env(os.environ, config.publish)
        result = publish_site(config.output_dir, credentials, settings=config.publish, branch=branch)
    except QuireError as exc:
        console.print(f"[bold red]Publish failed[/]: {escape(str(exc))}")
        raise typer.Exit(code=1) from exc
    _print_publish_summary(result)


@app.command()
def deploy(
    config_path: ConfigPathOption = ".",
    event: Annotated[
        str | None,
        typer.Option("--event", "-e", help="CI event name; defaults to GITHUB_EVENT_NAME."),
    ] = None,
    branch: Annotated[
        str | None,
        typer.Option("--branch", "-b", help="Branch name; defaults to GITHUB_REF_NAME."),
    ] = None,
) -> None:
    """Build the book and publish it when the CI event qualifies."""
    config = _load(config_path)
    trigger = TriggerEvent.from_env(os.environ, name=event, branch=branch)
    try:
        result = run_pipeline(config, event=trigger, env=os.environ)
    except QuireError as exc:
        console.print(f"[bold red]Deploy failed[/]: {escape(str(exc))}")
        raise typer.Exit(code=1) from exc

    _print_build_summary(result.build)
    if result.publish is None:
        console.print(f"[bold yellow]Publish skipped[/]: {result.skipped_reason}.")
        return
    _print_publish_summary(result.publish)


def _run_build(config: Config) -> BuildResult:
    console.print(f"[bold blue]Building[/]: {_display_path(config.summary_path)}")
    try:
        return build_book(config)
    except QuireError as exc:
        console.print(f"[bold red]Build failed[/]: {escape(str(exc))}")
        raise typer.Exit(code=1) from exc


def _print_build_summary(result: BuildResult) -> None:
    chapters = result.report.chapters
    output = result.report.output
    console.print(
        f"[bold green]Built[/]: {result.book.title} -> {_display_path(result.output_dir)} "
        f"({chapters.rendered} chapter(s), {output.pages} page(s), "
        f"{output.theme_assets + output.source_assets} asset(s))"
    )
    if result.warnings:
        console.print("[bold yellow]Warnings:[/]")
        for warning in result.warnings:
            console.print(f"- {warning.location}: {warning.message}")
    console.print(f"[bold blue]Report[/]: {_display_path(result.report_path)}")


def _print_publish_summary(result: PublishResult) -> None:
    target = result.url or result.project_name
    branch = f" (branch {result.branch})" if result.branch else ""
    console.print(f"[bold green]Published[/]: {_display_path(result.directory)} -> {target}{branch}")


def _print_scaffold_summary(directory: Path, result: ScaffoldResult) -> None:
    console.print(f"[bold green]Book ready[/]: {_display_path(directory.resolve())}")

    for path in result.created:
        console.print(f"- {_display_path(path)} (new)")
    for path in result.updated:
        console.print(f"- {_display_path(path)} (updated)")

    if result.notes:
        console.print("[bold blue]Next steps[/]:")
        for note in result.notes:
            console.print(f"- {note}")


def _issue_sort_key(issue: BookIssue) -> tuple[int, str, int]:
    severity_order = 0 if issue.severity is IssueSeverity.ERROR else 1
    return (severity_order, issue.source_path, issue.line or 0)


def _print_verification_report(report: VerificationReport) -> None:
    if not report.issues:
        console.print(
            "[bold green]Verification complete[/]: "
            f"{report.scanned_files} HTML file(s) scanned; no issues found."
        )
        return

    console.print(
        "[bold red]Verification issues[/]: "
        f"{len(report.issues)} issue(s) detected across {report.scanned_files} file(s)."
    )
    for issue in report.issues:
        console.print(f"[bold red]{issue.kind}[/] {_display_path(issue.source)} -> {issue.target} :: {issue.message}")


def _render_verification_text(report: VerificationReport, output_dir: Path) -> str:
    lines = [
        "quire site verification report",
        f"Output directory: {output_dir.resolve().as_posix()}",
        f"HTML files scanned: {report.scanned_files}",
        f"Issues detected: {len(report.issues)}",
        "",
    ]
    if not report.issues:
        lines.append("No issues detected.")
    else:
        for issue in report.issues:
            lines.append(
                f"- [{issue.kind}] {issue.source.resolve().as_posix()} -> {issue.target}: {issue.message}"
            )
    lines.append("")
    return "\n".join(lines)


def _display_path(path: Path) -> str:
    try:
        return path.relative_to(Path.cwd()).as_posix()
    except ValueError:
        return path.as_posix()


def _load(path: str, *, output_dir: Path | None = None) -> Config:
    try:
        config = load_config(path)
    except FileNotFoundError as exc:
        raise typer.BadParameter(f"Config file not found: {path}") from exc
    except ConfigError as exc:
        raise typer.BadParameter(str(exc)) from exc
    if output_dir is not None:
        resolved = output_dir.resolve()
        if resolved == config.source_dir or config.source_dir.is_relative_to(resolved):
            raise typer.BadParameter(f"--output-dir {resolved} would overwrite the source directory.")
        if config.cache_dir.is_relative_to(resolved):
            raise typer.BadParameter(f"--output-dir {resolved} would publish the cache directory {config.cache_dir}.")
        config.output_dir = resolved
    return config


def _remove_path(path: Path) -> None:
    if path.is_dir():
        shutil.rmtree(path, ignore_errors=True)
    elif path.exists():
        path.unlink(missing_ok=True)
