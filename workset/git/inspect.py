"""Repository state inspection: commits, local changes, and unpushed work.

HEAD, refs, and upstream configuration are read straight from the metadata
directory. The only subprocess per inspection is one ``git status`` (index and
working-tree comparison, untracked files included). Failures never propagate:
they are logged at WARNING and the inspection is marked ``degraded`` with the
conservative "not dirty, no commits" defaults.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path

from ..records import RepoStatus, RepositoryRecord
from . import commands, metadata

logger = logging.getLogger(__name__)

EPOCH = 0.0


@dataclass(frozen=True)
class RepositoryInspection:
    """Facts gathered about one repository in a single pass."""

    path: Path
    has_commits: bool = False
    has_changes: bool = False
    has_upstream: bool = False
    has_unpushed: bool = False
    head_commit: str | None = None
    changed_paths: tuple[str, ...] = ()
    degraded: bool = False

    @property
    def status(self) -> RepoStatus:
        if not self.has_commits:
            return RepoStatus.NO_COMMITS
        if self.has_changes:
            return RepoStatus.DIRTY
        if self.has_unpushed:
            return RepoStatus.UNPUSHED
        return RepoStatus.CLEAN

    @property
    def safe_to_drop(self) -> bool:
        """Whether dropping without ``force`` can lose nothing.

        Uncommitted or untracked files block a drop even when the repository
        has no commits yet, and so does any read failure.
        """
        return not (self.has_changes or self.has_unpushed or self.degraded)


def inspect_repository(path: Path) -> RepositoryInspection:
    """Inspect ``path`` and return its commits/changes/upstream facts."""
    path = Path(path)
    result = RepositoryInspection(path=path)

    git_dir = metadata.resolve_git_dir(path)
    if git_dir is None:
        logger.warning("Failed to open repository at %s: no git metadata found", path)
        return replace(result, degraded=True)

    head = metadata.read_head(git_dir)
    if head is None:
        logger.warning("Failed to read HEAD of repository at %s", path)
        return replace(result, degraded=True)
    result = replace(result, has_commits=head.commit is not None, head_commit=head.commit)

    records = commands.status_porcelain(path)
    if records is None:
        logger.warning("Failed to check if repository is dirty at %s", path)
        result = replace(result, degraded=True)
    elif records:
        logger.debug("Repository has uncommitted changes: %s", path)
        result = replace(result, has_changes=True, changed_paths=tuple(rel for _status, rel in records))

    if head.commit is None or head.branch is None:
        return result

    tracking_ref = metadata.upstream_ref(metadata.read_repo_config(git_dir), head.branch)
    if tracking_ref is None:
        logger.debug("No upstream branch configured for %s", path)
        return result
    tracking_commit = metadata.resolve_ref(git_dir, tracking_ref)
    if tracking_commit is None:
        logger.debug("Tracking ref %s not found in %s, assuming never pushed", tracking_ref, path)
        return result

    return replace(result, has_upstream=True, has_unpushed=tracking_commit != head.commit)


def classify(path: Path) -> RepoStatus:
    """Return the status class of the repository at ``path``."""
    return inspect_repository(path).status


def _latest_mtime(repo_path: Path, relative_paths: tuple[str, ...]) -> float:
    latest = EPOCH
    for rel in relative_paths:
        try:
            mtime = (repo_path / rel).stat().st_mtime
        except OSError:
            continue
        if mtime > latest:
            latest = mtime
    return latest


def last_activity(
    path: Path,
    is_clean: bool,
    inspection: RepositoryInspection | None = None,
) -> float | None:
    """Return a best-effort "last touched" timestamp in POSIX seconds.

    Clean repositories use the HEAD commit time (``None`` if unavailable).
    Anything else uses the newer of the commit time and the newest mtime among
    changed/untracked files, each defaulting to the epoch.
    """
    path = Path(path)
    commit_time = commands.head_commit_time(path)
    if is_clean:
        return commit_time

    if inspection is None:
        records = commands.status_porcelain(path) or []
        changed = tuple(rel for _status, rel in records)
    else:
        changed = inspection.changed_paths
    dirty_time = _latest_mtime(path, changed)
    return max(commit_time if commit_time is not None else EPOCH, dirty_time)


def repository_size(path: Path) -> int:
    """Sum file sizes below ``path``, skipping ``.git`` entries and symlinks."""
    total = 0
    pending = [Path(path)]
    while pending:
        directory = pending.pop()
        try:
            with os.scandir(directory) as entries:
                for entry in entries:
                    if entry.name == ".git":
                        continue
                    try:
                        if entry.is_dir(follow_symlinks=False):
                            pending.append(Path(entry.path))
                        elif entry.is_file(follow_symlinks=False):
                            total += entry.stat(follow_symlinks=False).st_size
                    except OSError:
                        continue
        except OSError as exc:
            logger.debug("Skipping %s while sizing: %s", directory, exc)
    return total


def display_name_for(path: Path, root: Path) -> str:
    """Return ``path`` relative to ``root`` as a ``/``-joined name."""
    try:
        return Path(path).relative_to(root).as_posix()
    except ValueError:
        return Path(path).as_posix()


def build_repository_record(path: Path, root: Path) -> RepositoryRecord:
    """Inspect a workspace repository and return its listing record."""
    inspection = inspect_repository(path)
    status = inspection.status
    return RepositoryRecord(
        path=Path(path),
        display_name=display_name_for(path, root),
        status=status,
        modification_time=last_activity(path, status is RepoStatus.CLEAN, inspection),
    )


def build_library_record(entry_path: Path, key: str) -> RepositoryRecord:
    """Return the listing record for one bare library entry."""
    return RepositoryRecord(
        path=Path(entry_path),
        display_name=key,
        status=RepoStatus.CLEAN,
        modification_time=commands.head_commit_time(entry_path),
        size_bytes=repository_size(entry_path),
    )


__all__ = [
    "RepositoryInspection",
    "build_library_record",
    "build_repository_record",
    "classify",
    "display_name_for",
    "inspect_repository",
    "last_activity",
    "repository_size",
]
