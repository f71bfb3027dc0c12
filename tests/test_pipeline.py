from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Mapping, Sequence

import pytest

from quire.config import Config, load_config
from quire.content import BookValidationError
from quire.pipeline import TriggerEvent, publish_skip_reason, run_pipeline
from quire.publish import PublishAuthError

ENV = {
    "CLOUDFLARE_API_TOKEN": "token-123",
    "CLOUDFLARE_ACCOUNT_ID": "account-456",
    "CLOUDFLARE_PAGES_PROJECT_NAME": "my-book",
}


def _write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def _book(tmp_path: Path, summary: str = "- [A](a.md)\n- [B](b.md)\n", config: str = "") -> Config:
    if config:
        _write(tmp_path / "quire.yml", config)
    _write(tmp_path / "src" / "SUMMARY.md", summary)
    _write(tmp_path / "src" / "a.md", "# A\n")
    _write(tmp_path / "src" / "b.md", "# B\n")
    return load_config(tmp_path)


class _RecordingRunner:
    def __init__(self) -> None:
        self.calls: list[list[str]] = []

    def __call__(self, command: Sequence[str], env: Mapping[str, str]) -> subprocess.CompletedProcess[str]:
        self.calls.append(list(command))
        return subprocess.CompletedProcess(list(command), 0, stdout="https://main.my-book.pages.dev\n", stderr="")


def test_trigger_event_reads_github_environment() -> None:
    event = TriggerEvent.from_env({"GITHUB_EVENT_NAME": "push", "GITHUB_REF_NAME": "main"})

    assert event == TriggerEvent(name="push", branch="main")


def test_trigger_event_overrides_take_precedence() -> None:
    event = TriggerEvent.from_env({"GITHUB_EVENT_NAME": "pull_request"}, name="push", branch="release")

    assert event == TriggerEvent(name="push", branch="release")


def test_push_event_builds_then_publishes(tmp_path: Path) -> None:
    config = _book(tmp_path)
    runner = _RecordingRunner()

    result = run_pipeline(config, event=TriggerEvent(name="push", branch="main"), env=ENV, runner=runner)

    assert result.published
    assert result.publish is not None
    assert result.publish.url == "https://main.my-book.pages.dev"
    assert (tmp_path / "book" / "a.html").exists()
    assert len(runner.calls) == 1
    assert str(result.build.output_dir) in runner.calls[0]
    assert runner.calls[0][-2:] == ["--branch", "main"]


@pytest.mark.parametrize("event_name", ["pull_request", "workflow_dispatch", None])
def test_non_push_events_build_without_publishing(tmp_path: Path, event_name: str | None) -> None:
    config = _book(tmp_path)
    runner = _RecordingRunner()

    result = run_pipeline(config, event=TriggerEvent(name=event_name, branch="main"), env=ENV, runner=runner)

    assert not result.published
    assert result.skipped_reason is not None
    assert "does not trigger a publish" in result.skipped_reason
    assert runner.calls == []
    assert (tmp_path / "book" / "a.html").exists()


def test_untracked_branch_skips_publish(tmp_path: Path) -> None:
    config = _book(tmp_path, config="publish:\n  branches: [main]\n")
    runner = _RecordingRunner()

    result = run_pipeline(config, event=TriggerEvent(name="push", branch="feature/x"), env=ENV, runner=runner)

    assert not result.published
    assert result.skipped_reason == "branch 'feature/x' is not configured to publish"
    assert runner.calls == []


def test_publish_skip_reason_allows_any_branch_when_unrestricted(tmp_path: Path) -> None:
    config = _book(tmp_path)

    assert publish_skip_reason(config, TriggerEvent(name="push", branch="anything")) is None


def test_failed_build_never_publishes(tmp_path: Path) -> None:
    config = _book(tmp_path, summary="- [A](a.md)\n- [C](c.md)\n")
    runner = _RecordingRunner()

    with pytest.raises(BookValidationError):
        run_pipeline(config, event=TriggerEvent(name="push", branch="main"), env=ENV, runner=runner)

    assert runner.calls == []
    assert not (tmp_path / "book").exists()


def test_missing_credentials_fail_after_build(tmp_path: Path) -> None:
    config = _book(tmp_path)
    runner = _RecordingRunner()

    with pytest.raises(PublishAuthError):
        run_pipeline(config, event=TriggerEvent(name="push", branch="main"), env={}, runner=runner)

    assert runner.calls == []
    assert (tmp_path / "book" / "index.html").exists()
