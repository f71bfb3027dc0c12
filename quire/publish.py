"""Upload a built book to Cloudflare Pages through wrangler."""

from __future__ import annotations

import logging
import os
import re
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Mapping, Sequence

from .config import PublishConfig
from .errors import QuireError

logger = logging.getLogger(__name__)

PublishRunner = Callable[[Sequence[str], Mapping[str, str]], subprocess.CompletedProcess[str]]

_URL_PATTERN = re.compile(r"https://[^\s'\"<>]+\.pages\.dev[^\s'\"<>]*")
_AUTH_MARKERS = (
    "authentication error",
    "not authorized",
    "unauthorized",
    "invalid api token",
    "code: 10000",
    "code: 9109",
)


class PublishError(QuireError):
    """Raised when the build output cannot be published."""


class PublisherUnavailableError(PublishError):
    """Raised when the wrangler command cannot be executed."""


class PublishAuthError(PublishError):
    """Raised when credentials are missing or rejected by the hosting provider."""


class PublishTransportError(PublishError):
    """Raised when the upload fails for any reason other than authentication."""


@dataclass(slots=True)
class PublishCredentials:
    """Opaque secrets for the hosting provider. Never logged or placed on argv."""

    api_token: str
    account_id: str
    project_name: str

    @classmethod
    def from_env(cls, env: Mapping[str, str], settings: PublishConfig) -> "PublishCredentials":
        project_name = settings.project_name or env.get(settings.project_name_env, "")
        values = {
            settings.api_token_env: env.get(settings.api_token_env, ""),
            settings.account_id_env: env.get(settings.account_id_env, ""),
            settings.project_name_env: project_name,
        }
        missing = [name for name, value in values.items() if not value.strip()]
        if missing:
            raise PublishAuthError(f"Missing publish credentials: {', '.join(missing)}.")
        return cls(
            api_token=values[settings.api_token_env].strip(),
            account_id=values[settings.account_id_env].strip(),
            project_name=project_name.strip(),
        )

    def __repr__(self) -> str:
        return f"PublishCredentials(project_name={self.project_name!r})"


@dataclass(slots=True)
class PublishResult:
    """Outcome of a successful upload."""

    directory: Path
    project_name: str
    branch: str | None
    url: str | None
    output: str


def publish_site(
    directory: Path,
    credentials: PublishCredentials,
    *,
    settings: PublishConfig,
    branch: str | None = None,
    runner: PublishRunner | None = None,
    base_env: Mapping[str, str] | None = None,
) -> PublishResult:
    """Upload ``directory`` to the configured Pages project.

    The upload either completes or raises; there are no retries.
    """
    site_root = directory.resolve()
    if not site_root.is_dir():
        raise PublishError(f"Output directory does not exist: {site_root}")
    if not any(path.is_file() for path in site_root.rglob("*")):
        raise PublishError(f"Output directory is empty: {site_root}")

    command = [
        *settings.command,
        "pages",
        "deploy",
        str(site_root),
        "--project-name",
        credentials.project_name,
    ]
    if branch:
        command.extend(["--branch", branch])

    env = dict(os.environ if base_env is None else base_env)
    env["CLOUDFLARE_API_TOKEN"] = credentials.api_token
    env["CLOUDFLARE_ACCOUNT_ID"] = credentials.account_id

    exec_runner = runner or _run_subprocess
    logger.info("Publishing %s to Pages project %s", site_root, credentials.project_name)
    try:
        result = exec_runner(command, env)
    except FileNotFoundError as exc:
        raise PublisherUnavailableError(
            f"'{settings.command[0]}' is not installed or not available in PATH."
        ) from exc

    output = "\n".join(part.strip() for part in (result.stdout, result.stderr) if part and part.strip())
    if result.returncode != 0:
        lowered = output.lower()
        if any(marker in lowered for marker in _AUTH_MARKERS):
            raise PublishAuthError(f"Cloudflare rejected the publish credentials:\n{output}")
        raise PublishTransportError(f"wrangler exited with code {result.returncode}:\n{output}")

    url = _deployment_url(result.stdout or "")
    if url:
        logger.info("Deployment available at %s", url)
    return PublishResult(
        directory=site_root,
        project_name=credentials.project_name,
        branch=branch,
        url=url,
        output=output,
    )


def _run_subprocess(command: Sequence[str], env: Mapping[str, str]) -> subprocess.CompletedProcess[str]:
    return subprocess.run(
        command,
        check=False,
        capture_output=True,
        text=True,
        env=dict(env),
    )


def _deployment_url(stdout: str) -> str | None:
    matches = _URL_PATTERN.findall(stdout)
    if not matches:
        return None
    return matches[-1].rstrip(".,)")
