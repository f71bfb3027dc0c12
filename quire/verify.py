"""Link and anchor verification for a built book."""

from __future__ import annotations

from dataclasses import dataclass, field
from html.parser import HTMLParser
from pathlib import Path
from typing import Iterator
from urllib.parse import unquote, urlsplit

_IGNORED_SCHEMES = {"http", "https", "mailto", "tel", "data", "javascript", "ftp"}
_MEDIA_TAGS = {"img", "video", "audio", "source", "track"}


@dataclass(slots=True)
class VerificationIssue:
    """Represents a broken reference found in a rendered page."""

    kind: str
    source: Path
    target: str
    message: str


@dataclass(slots=True)
class VerificationReport:
    """Aggregate verification results."""

    scanned_files: int
    issues: list[VerificationIssue] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return len(self.issues)


class _PageScanner(HTMLParser):
    """Collect outgoing references and the element ids a page defines."""

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.references: list[tuple[str, str, str]] = []
        self.anchors: set[str] = set()

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        attr_map = {name: value for name, value in attrs if value is not None}
        for key in ("id", "name"):
            if key in attr_map and (key == "id" or tag == "a"):
                self.anchors.add(attr_map[key])

        if tag in {"a", "link"} and "href" in attr_map:
            self.references.append((tag, "href", attr_map["href"]))
        if tag in {"img", "script", "iframe", "audio", "video", "source", "track", "embed"}:
            src = attr_map.get("src")
            if src:
                self.references.append((tag, "src", src))
        if tag in {"img", "source"} and "srcset" in attr_map:
            for candidate in _parse_srcset(attr_map["srcset"]):
                self.references.append((tag, "srcset", candidate))


def verify_site(output_dir: Path, *, skip: set[str] | None = None) -> VerificationReport:
    """Verify links, assets and fragment anchors within the built book.

    ``skip`` lists output-relative pages whose references are not checked
    (the not-found page links from the site root, not from its own path).
    """
    output_dir = output_dir.resolve()
    skipped = skip or set()
    html_files = sorted(output_dir.rglob("*.html"))
    scans: dict[Path, _PageScanner] = {}
    issues: list[VerificationIssue] = []

    for html_file in html_files:
        try:
            scanner = _scan(html_file)
        except OSError as exc:
            issues.append(
                VerificationIssue(
                    kind="unreadable",
                    source=html_file,
                    target=str(html_file),
                    message=f"Unable to read HTML file: {exc}",
                )
            )
            continue
        scans[html_file] = scanner

    for html_file, scanner in scans.items():
        if html_file.relative_to(output_dir).as_posix() in skipped:
            continue
        for tag, attr, reference in scanner.references:
            issue = _check_reference(tag, attr, reference, html_file, output_dir, scans)
            if issue is not None:
                issues.append(issue)

    return VerificationReport(scanned_files=len(html_files), issues=issues)


def _scan(html_file: Path) -> _PageScanner:
    scanner = _PageScanner()
    scanner.feed(html_file.read_text(encoding="utf-8"))
    scanner.close()
    return scanner


def _check_reference(
    tag: str,
    attr: str,
    reference: str,
    source: Path,
    output_dir: Path,
    scans: dict[Path, _PageScanner],
) -> VerificationIssue | None:
    stripped = reference.strip()
    if not stripped:
        return None
    parsed = urlsplit(stripped)
    if parsed.scheme in _IGNORED_SCHEMES or parsed.netloc:
        return None

    path = unquote(parsed.path)
    if not path:
        target = source
    else:
        if path.startswith("/"):
            target = (output_dir / path.lstrip("/")).resolve()
        else:
            target = (source.parent / path).resolve()
        if not target.is_relative_to(output_dir):
            return VerificationIssue(
                kind="out-of-bounds",
                source=source,
                target=reference,
                message=f"Reference points outside the site bundle: '{reference}'",
            )
        if target.is_dir():
            target = target / "index.html"
        if not target.exists():
            return VerificationIssue(
                kind=_classify_missing(tag),
                source=source,
                target=reference,
                message=f"Missing target for {tag} {attr} '{reference}'",
            )

    fragment = unquote(parsed.fragment)
    if fragment and target.suffix == ".html":
        page = scans.get(target)
        if page is not None and fragment not in page.anchors:
            return VerificationIssue(
                kind="missing-anchor",
                source=source,
                target=reference,
                message=f"Anchor '#{fragment}' not found in {target.relative_to(output_dir).as_posix()}",
            )
    return None


def _parse_srcset(srcset: str) -> Iterator[str]:
    for part in srcset.split(","):
        candidate = part.strip().split(" ", 1)[0]
        if candidate:
            yield candidate


def _classify_missing(tag: str) -> str:
    if tag == "a":
        return "missing-page"
    if tag in _MEDIA_TAGS:
        return "missing-asset"
    return "missing-file"
