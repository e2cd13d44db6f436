"""Thin wrappers around the ``git`` executable.

Every subprocess workset launches goes through ``run_git``. Launch failures
(git missing, timeouts) come back as ``None`` instead of raising, matching the
way callers treat "git said no" and "git could not run" alike.
"""

from __future__ import annotations

import os
import subprocess
from pathlib import Path

GIT_QUERY_TIMEOUT_SECONDS = 30.0

# Keep git from prompting or paging inside non-interactive calls.
_GIT_ENV_OVERRIDES = {
    "GIT_TERMINAL_PROMPT": "0",
    "GIT_PAGER": "cat",
    "LC_ALL": "C",
}


def _git_env() -> dict[str, str]:
    env = dict(os.environ)
    env.update(_GIT_ENV_OVERRIDES)
    return env


def run_git(
    cwd: Path,
    args: list[str],
    timeout_seconds: float | None = GIT_QUERY_TIMEOUT_SECONDS,
) -> subprocess.CompletedProcess[str] | None:
    """Run ``git -C cwd *args`` capturing text output; ``None`` if it cannot run."""
    try:
        return subprocess.run(
            ["git", "-C", str(cwd), *args],
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
            check=False,
            timeout=timeout_seconds,
            env=_git_env(),
        )
    except (OSError, subprocess.SubprocessError):
        return None


def git_failure_message(proc: subprocess.CompletedProcess[str] | None, action: str) -> str:
    """Describe a failed git call, preferring git's own stderr text."""
    if proc is None:
        return f"{action}: could not run git"
    detail = (proc.stderr or proc.stdout or "").strip()
    if detail:
        return f"{action}: {detail}"
    return f"{action}: git exited with status {proc.returncode}"


def iter_porcelain_records(output: str) -> list[tuple[str, str]]:
    """Split ``status --porcelain=v1 -z`` output into ``(XY, path)`` records."""
    records: list[tuple[str, str]] = []
    tokens = output.split("\0")
    index = 0
    while index < len(tokens):
        token = tokens[index]
        index += 1
        if not token:
            continue
        if len(token) < 4 or token[2] != " ":
            continue

        status = token[:2]
        path_text = token[3:]
        records.append((status, path_text))

        # Renames/copies carry an extra NUL-separated source path token.
        if "R" in status or "C" in status:
            index += 1

    return records


def status_porcelain(repo_path: Path) -> list[tuple[str, str]] | None:
    """Return working-tree/index changes including untracked files.

    Ignored files are excluded; ``None`` means git could not compute status.
    """
    proc = run_git(
        repo_path,
        ["status", "--porcelain=v1", "-z", "--untracked-files=all"],
    )
    if proc is None or proc.returncode != 0:
        return None
    return [(status, path) for status, path in iter_porcelain_records(proc.stdout) if status != "!!"]


def head_commit_time(repo_path: Path) -> float | None:
    """Return the HEAD commit's committer timestamp in POSIX seconds."""
    proc = run_git(repo_path, ["log", "-1", "--format=%ct", "HEAD"])
    if proc is None or proc.returncode != 0:
        return None
    try:
        return float(int(proc.stdout.strip()))
    except ValueError:
        return None


def set_bare(git_dir: Path, bare: bool) -> subprocess.CompletedProcess[str] | None:
    """Set ``core.bare`` in the config of the repository at ``git_dir``."""
    git_dir = Path(git_dir).absolute()
    return run_git(
        git_dir,
        ["--git-dir", str(git_dir), "config", "core.bare", "true" if bare else "false"],
    )


def checkout_head(repo_path: Path) -> subprocess.CompletedProcess[str] | None:
    """Rebuild index and working tree from HEAD (``git reset --hard``)."""
    return run_git(repo_path, ["reset", "--hard", "--quiet", "HEAD"], timeout_seconds=None)


def clone(url: str, dest: Path) -> subprocess.CompletedProcess[str] | None:
    """Clone ``url`` into ``dest``; blocks until git returns."""
    return run_git(dest.parent, ["clone", "--quiet", url, str(dest)], timeout_seconds=None)


def fetch_all(repo_path: Path) -> subprocess.CompletedProcess[str] | None:
    """Fetch every configured remote (``git fetch --all --prune``)."""
    return run_git(repo_path, ["fetch", "--all", "--prune", "--quiet"], timeout_seconds=None)


__all__ = [
    "GIT_QUERY_TIMEOUT_SECONDS",
    "checkout_head",
    "clone",
    "fetch_all",
    "git_failure_message",
    "head_commit_time",
    "iter_porcelain_records",
    "run_git",
    "set_bare",
    "status_porcelain",
]
