"""Build-then-publish pipeline run from CI."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping

from .builder import BuildResult, build_book
from .config import Config
from .publish import PublishCredentials, PublishResult, PublishRunner, publish_site

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class TriggerEvent:
    """The CI event that started the pipeline."""

    name: str | None
    branch: str | None

    @classmethod
    def from_env(
        cls,
        env: Mapping[str, str],
        *,
        name: str | None = None,
        branch: str | None = None,
    ) -> "TriggerEvent":
        return cls(
            name=name or env.get("GITHUB_EVENT_NAME") or None,
            branch=branch or env.get("GITHUB_REF_NAME") or None,
        )


@dataclass(slots=True)
class PipelineResult:
    build: BuildResult
    event: TriggerEvent
    publish: PublishResult | None = None
    skipped_reason: str | None = None

    @property
    def published(self) -> bool:
        return self.publish is not None


def publish_skip_reason(config: Config, event: TriggerEvent) -> str | None:
    """Return why ``event`` does not publish, or ``None`` when it should."""
    settings = config.publish
    if event.name not in settings.trigger_events:
        return f"event '{event.name or 'unknown'}' does not trigger a publish"
    if settings.branches and event.branch not in settings.branches:
        return f"branch '{event.branch or 'unknown'}' is not configured to publish"
    return None


def run_pipeline(
    config: Config,
    *,
    event: TriggerEvent,
    env: Mapping[str, str],
    runner: PublishRunner | None = None,
) -> PipelineResult:
    """Build the book and publish it when ``event`` qualifies.

    A build failure propagates before any publish attempt.
    """
    build = build_book(config)

    reason = publish_skip_reason(config, event)
    if reason is not None:
        logger.info("Skipping publish: %s", reason)
        return PipelineResult(build=build, event=event, skipped_reason=reason)

    credentials = PublishCredentials.from_env(env, config.publish)
    result = publish_site(
        build.output_dir,
        credentials,
        settings=config.publish,
        branch=event.branch,
        runner=runner,
        base_env=env,
    )
    return PipelineResult(build=build, event=event, publish=result)
