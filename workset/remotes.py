"""Remote providers listed in ``.workset.toml``.

Each provider lists the repository paths it can offer by shelling out to the
provider's own CLI (``gh`` or ``glab``); paths come back in the same
``<domain>/<owner>/<name>`` form the workspace uses on disk.
"""

from __future__ import annotations

import json
import logging
import os
import subprocess
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .errors import RemoteError, WorkspaceConfigError

logger = logging.getLogger(__name__)

DEFAULT_GITLAB_URL = "https://gitlab.com"
GITHUB_LIST_LIMIT = 1000
GITLAB_PER_PAGE = 100


class RemoteKind(Enum):
    GITHUB = "github"
    GITLAB = "gitlab"


def _strip_scheme(url: str) -> str:
    for prefix in ("https://", "http://"):
        if url.startswith(prefix):
            return url[len(prefix) :]
    return url


def _run_cli(args: list[str], env: dict[str, str] | None = None) -> str:
    tool = args[0]
    try:
        proc = subprocess.run(
            args,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
            check=False,
            env=env,
        )
    except OSError as exc:
        raise RemoteError(
            f"Failed to run '{tool}'. Make sure it is installed and authenticated: {exc}"
        ) from exc
    if proc.returncode != 0:
        detail = (proc.stderr or proc.stdout or "").strip()
        raise RemoteError(f"Failed to fetch repository list with '{tool}': {detail}")
    return proc.stdout


@dataclass(frozen=True)
class Remote:
    """One hosting account whose repositories can be cloned into the workspace.

    ``member`` only matters for GitLab: when set, ``glab`` lists every project
    the authenticated user belongs to rather than those owned by ``user``.
    """

    kind: RemoteKind
    user: str
    url: str | None = None
    include_forks: bool = False
    include_archived: bool = False
    member: bool = True

    @property
    def domain(self) -> str:
        if self.kind is RemoteKind.GITHUB:
            return "github.com"
        return _strip_scheme(self.url or DEFAULT_GITLAB_URL).rstrip("/")

    def name(self) -> str:
        return f"{self.domain}/{self.user}"

    def __str__(self) -> str:
        label = "Github" if self.kind is RemoteKind.GITHUB else "Gitlab"
        return f"{label}({self.user})"

    def list_repo_paths(self) -> list[str]:
        """Return ``<domain>/<owner>/<repo>`` paths offered by this remote.

        Raises ``RemoteError`` when the CLI is missing, fails, or prints
        output that cannot be parsed.
        """
        if self.kind is RemoteKind.GITHUB:
            return self._list_github()
        return self._list_gitlab()

    def _list_github(self) -> list[str]:
        output = _run_cli(
            [
                "gh",
                "repo",
                "list",
                self.user,
                "--json",
                "nameWithOwner,isFork,isArchived",
                "--limit",
                str(GITHUB_LIST_LIMIT),
            ]
        )
        try:
            repos = json.loads(output)
        except ValueError as exc:
            raise RemoteError(f"Failed to parse gh output: {exc}") from exc
        if not isinstance(repos, list):
            raise RemoteError("Failed to parse gh output: expected a JSON array")

        paths: list[str] = []
        for repo in repos:
            if not isinstance(repo, dict):
                continue
            name_with_owner = repo.get("nameWithOwner")
            if not isinstance(name_with_owner, str) or not name_with_owner:
                continue
            if repo.get("isFork") and not self.include_forks:
                continue
            if repo.get("isArchived") and not self.include_archived:
                continue
            paths.append(f"github.com/{name_with_owner}")
        return paths

    def _list_gitlab(self) -> list[str]:
        args = ["glab", "repo", "list"]
        args.extend(["--member"] if self.member else [self.user])
        args.extend(["--per-page", str(GITLAB_PER_PAGE)])

        env = None
        if (self.url or DEFAULT_GITLAB_URL).rstrip("/") != DEFAULT_GITLAB_URL:
            env = dict(os.environ)
            env["GITLAB_HOST"] = self.domain

        output = _run_cli(args, env=env)
        paths: list[str] = []
        for line in output.splitlines():
            project = line.split("\t", 1)[0].strip()
            # glab prints a "Showing N of M projects" banner around the table.
            if not project or "/" not in project or " " in project:
                continue
            paths.append(f"{self.domain}/{project}")

        if not (self.include_forks and self.include_archived):
            logger.warning("GitLab fork/archive filtering is not supported by glab; listing all repositories")
        return paths

    @classmethod
    def for_owner(cls, provider: str, owner: str) -> Remote:
        """Build an ad-hoc remote listing ``owner``'s repositories on ``provider``."""
        if provider == "github.com":
            return cls(kind=RemoteKind.GITHUB, user=owner)
        if provider.startswith("gitlab."):
            return cls(kind=RemoteKind.GITLAB, user=owner, url=f"https://{provider}", member=False)
        raise RemoteError(f"Mass clone is not supported for provider: {provider}")

    @classmethod
    def from_mapping(cls, data: Any) -> Remote:
        """Validate one ``[[remotes]]`` table from ``.workset.toml``."""
        if not isinstance(data, dict):
            raise WorkspaceConfigError("each entry in 'remotes' must be a table")
        raw_kind = data.get("kind")
        try:
            kind = RemoteKind(str(raw_kind).lower())
        except ValueError as exc:
            raise WorkspaceConfigError(
                f"unknown remote kind {raw_kind!r}; expected 'github' or 'gitlab'"
            ) from exc

        user = data.get("user")
        if not isinstance(user, str) or not user.strip():
            raise WorkspaceConfigError(f"remote of kind {kind.value!r} needs a non-empty 'user'")

        url = data.get("url")
        if url is not None and not isinstance(url, str):
            raise WorkspaceConfigError("remote 'url' must be a string")
        if kind is RemoteKind.GITHUB and url is not None:
            raise WorkspaceConfigError("'url' is only supported for gitlab remotes")

        flags: dict[str, bool] = {}
        for key in ("include_forks", "include_archived"):
            value = data.get(key, False)
            if not isinstance(value, bool):
                raise WorkspaceConfigError(f"remote {key!r} must be true or false")
            flags[key] = value

        return cls(kind=kind, user=user.strip(), url=url, **flags)


def collect_remote_paths(remotes: list[Remote]) -> list[str]:
    """Return every path listed by ``remotes``; failing remotes are logged and skipped."""
    paths: list[str] = []
    for remote in remotes:
        try:
            paths.extend(remote.list_repo_paths())
        except RemoteError as exc:
            logger.warning("Remote %s could not list repositories: %s", remote, exc)
    return paths


__all__ = ["DEFAULT_GITLAB_URL", "Remote", "RemoteKind", "collect_remote_paths"]
