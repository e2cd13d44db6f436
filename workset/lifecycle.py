"""Open, restore, drop, and list operations over one workspace.

The manager is the only place that deletes working trees. A repository is
removed from the workspace only after its metadata has been stored in the
library, or when the caller asked for permanent deletion.
"""

from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path

from .errors import CloneError, LibraryError
from .git import commands
from .git.discovery import find_repositories, find_submodules
from .git.inspect import RepositoryInspection, build_repository_record, inspect_repository
from .library import Library, normalize_key
from .pattern import RepoPattern
from .records import RepoStatus, RepositoryRecord
from .remotes import Remote, collect_remote_paths
from .workspace import Workspace

MASS_CLONE_PROVIDERS = ("github.com", "gitlab.com")


@dataclass(frozen=True)
class LifecycleConfig:
    """Everything a ``LifecycleManager`` needs, passed explicitly.

    ``remote_paths`` are candidate ``<domain>/<owner>/<repo>`` paths used to
    resolve provider-less patterns on clone; when empty they are collected
    from ``remotes`` on first use.
    """

    workspace_root: Path
    library_root: Path
    delete: bool = False
    force: bool = False
    fetch_on_restore: bool = True
    include_submodules: bool = False
    remotes: tuple[Remote, ...] = ()
    remote_paths: tuple[str, ...] = ()

    @classmethod
    def from_workspace(cls, workspace: Workspace, **overrides: object) -> LifecycleConfig:
        return cls(
            workspace_root=workspace.path,
            library_root=workspace.library_path,
            remotes=workspace.remotes,
            **overrides,
        )


class DropAction(Enum):
    DROPPED = "dropped"
    DELETED = "deleted"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class DropOutcome:
    path: Path
    action: DropAction
    reason: str = ""


@dataclass
class DropReport:
    """Per-repository outcomes of one drop or drop-all call."""

    outcomes: list[DropOutcome] = field(default_factory=list)

    def add(self, outcome: DropOutcome) -> None:
        self.outcomes.append(outcome)

    def _count(self, *actions: DropAction) -> int:
        return sum(1 for outcome in self.outcomes if outcome.action in actions)

    @property
    def dropped(self) -> int:
        return self._count(DropAction.DROPPED, DropAction.DELETED)

    @property
    def skipped(self) -> int:
        return self._count(DropAction.SKIPPED)

    @property
    def failed(self) -> int:
        return self._count(DropAction.FAILED)


@dataclass
class BatchReport:
    """Outcome of a multi-repository restore or clone, keyed by workspace path."""

    succeeded: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: list[tuple[str, str]] = field(default_factory=list)


def _unsafe_reason(inspection: RepositoryInspection) -> str:
    if inspection.degraded:
        return "state that could not be verified"
    if inspection.has_changes:
        return "uncommitted changes"
    return "unpushed commits"


class LifecycleManager:
    """Moves repositories between the workspace and its library."""

    def __init__(self, config: LifecycleConfig, logger: logging.Logger | None = None) -> None:
        self.config = config
        self.logger = logger if logger is not None else logging.getLogger(__name__)
        self.root = Path(config.workspace_root).resolve()
        self.library = Library(Path(config.library_root))
        self._candidate_paths: tuple[str, ...] | None = tuple(config.remote_paths) or None

    # Lookup

    def _skip(self) -> set[Path]:
        return {self.library.path}

    def key_for(self, repo_path: Path) -> str | None:
        """Return the workspace-relative key of ``repo_path``; ``None`` if outside."""
        try:
            relative = Path(repo_path).resolve().relative_to(self.root)
        except ValueError:
            return None
        key = relative.as_posix()
        return None if key in {"", "."} else key

    def search(self, pattern: RepoPattern) -> list[Path]:
        """Return repositories at or below ``<workspace>/<pattern>``; nothing outside the root."""
        base = self.root / pattern.full_path()
        if self.key_for(base) is None and base.resolve() != self.root:
            return []
        return find_repositories(base, skip=self._skip())

    def workspace_repositories(self) -> list[Path]:
        return find_repositories(self.root, skip=self._skip())

    def _suffix_matches(self, keys: list[str], pattern: RepoPattern) -> list[str]:
        full = pattern.full_path()
        return [key for key in keys if key == full or key.endswith("/" + full)]

    def candidate_paths(self) -> tuple[str, ...]:
        if self._candidate_paths is None:
            self._candidate_paths = tuple(collect_remote_paths(list(self.config.remotes)))
        return self._candidate_paths

    # Listing

    def list_workspace(self, include_submodules: bool | None = None) -> list[RepositoryRecord]:
        """Inspect every top-level workspace repository (and optionally submodules)."""
        if include_submodules is None:
            include_submodules = self.config.include_submodules

        records: list[RepositoryRecord] = []
        for repo in self.workspace_repositories():
            records.append(build_repository_record(repo, self.root))
            if include_submodules:
                records.extend(self._submodule_records(repo))
        return records

    def _submodule_records(self, repo: Path) -> list[RepositoryRecord]:
        records: list[RepositoryRecord] = []
        for submodule in find_submodules(repo):
            sub_path = repo / submodule.path
            if submodule.initialized:
                record = build_repository_record(sub_path, self.root)
            else:
                record = RepositoryRecord(
                    path=sub_path,
                    display_name=sub_path.relative_to(self.root).as_posix(),
                    status=RepoStatus.NO_COMMITS,
                )
            records.append(replace(record, is_submodule=True, submodule_initialized=submodule.initialized))
        return records

    def list_library(self) -> list[RepositoryRecord]:
        return self.library.records()

    # Open / clone / restore

    def open(self, pattern: RepoPattern) -> Path:
        """Return a workspace path for ``pattern``, restoring or cloning if needed."""
        existing = self.search(pattern)
        if not existing:
            by_suffix = self._suffix_matches(
                [key for key in map(self.key_for, self.workspace_repositories()) if key], pattern
            )
            existing = [self.root / key for key in by_suffix]

        if existing:
            repo = existing[0]
            self.logger.info("Repository already in workspace: %s", repo)
            inspection = inspect_repository(repo)
            if inspection.has_changes:
                self.logger.warning("  %s has uncommitted changes", repo)
            if inspection.has_unpushed:
                self.logger.warning("  %s has unpushed commits", repo)
            if not inspection.has_commits:
                self.logger.warning("  %s has no commits", repo)
            return repo

        key = pattern.full_path()
        if not self.library.exists(key) and pattern.provider is None:
            candidates = self._suffix_matches(self.library.list(), pattern)
            if len(candidates) == 1:
                key = candidates[0]
        if self.library.exists(key):
            return self.restore_key(key)

        return self.clone(pattern)

    def restore_key(self, key: str) -> Path:
        """Restore library entry ``key`` into the workspace, then fetch."""
        self.logger.info("Restoring from library: %s", key)
        dest = self.library.restore(self.root, key)
        if self.config.fetch_on_restore:
            self.fetch(dest)
        self.logger.info("Restored %s", key)
        return dest

    def fetch(self, repo: Path) -> bool:
        """Best-effort ``git fetch --all``; failures are logged, never raised."""
        self.logger.info("Fetching latest changes for %s", repo)
        proc = commands.fetch_all(repo)
        if proc is None or proc.returncode != 0:
            self.logger.warning(
                "Could not fetch updates for %s (continuing anyway): %s",
                repo,
                commands.git_failure_message(proc, "fetch failed"),
            )
            return False
        return True

    def restore(self, pattern: RepoPattern) -> BatchReport:
        """Restore every library entry whose key contains ``pattern``."""
        report = BatchReport()
        needle = pattern.full_path()
        keys = [key for key in self.library.list() if needle in key]
        if not keys:
            self.logger.warning("No repositories found in library matching: %s", needle)
            return report

        self.logger.info("Found %d matching repositories in library", len(keys))
        for key in keys:
            if (self.root / key).exists():
                self.logger.info("Skipping %s (already in workspace)", key)
                report.skipped.append(key)
                continue
            try:
                self.restore_key(key)
            except LibraryError as exc:
                self.logger.error("Failed to restore %s: %s", key, exc)
                report.failed.append((key, str(exc)))
                continue
            report.succeeded.append(key)
        return report

    def clone(self, pattern: RepoPattern) -> Path:
        """Clone ``pattern`` into the workspace; raises ``CloneError`` on failure."""
        provider_and_path = pattern.provider_and_path()
        if provider_and_path is not None:
            key = pattern.full_path()
        else:
            candidates = self._suffix_matches(list(self.candidate_paths()), pattern)
            if not candidates:
                raise CloneError("No provider specified. Use full path like github.com/user/repo")
            if len(candidates) > 1:
                raise CloneError(
                    f"Pattern {pattern} is ambiguous across remotes: " + ", ".join(sorted(candidates))
                )
            key = candidates[0]
        return self._clone_key(key)

    def _clone_key(self, key: str) -> Path:
        try:
            key = normalize_key(key)
        except LibraryError as exc:
            raise CloneError(f"Refusing to clone {key!r}: {exc}") from exc
        url = f"https://{key}"
        dest = self.root.joinpath(*key.split("/"))
        if self.key_for(dest) is None:
            raise CloneError(f"Refusing to clone outside the workspace root {self.root}: {dest}")
        if dest.exists() and any(dest.iterdir()):
            raise CloneError(f"Destination already exists and is not empty: {dest}")
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise CloneError(f"Failed to create {dest.parent}: {exc}") from exc

        self.logger.info("Cloning %s to %s", url, dest)
        proc = commands.clone(url, dest)
        if proc is None:
            raise CloneError(f"Failed to clone {url}: could not run git")
        if proc.returncode != 0:
            raise CloneError(proc.stderr.strip() or f"git clone exited with status {proc.returncode}")
        self.logger.info("Successfully cloned to: %s", dest)
        return dest

    @staticmethod
    def is_owner_pattern(pattern: RepoPattern) -> bool:
        """Whether ``pattern`` names a whole account (``github.com/<owner>``)."""
        return pattern.provider in MASS_CLONE_PROVIDERS and "/" not in pattern.path

    def clone_many(self, provider: str, owner: str) -> BatchReport:
        """Clone every repository ``owner`` has on ``provider``, skipping existing ones."""
        self.logger.info("Fetching list of repositories from %s/%s", provider, owner)
        paths = Remote.for_owner(provider, owner).list_repo_paths()
        report = BatchReport()
        if not paths:
            self.logger.info("No repositories found for %s/%s", provider, owner)
            return report

        self.logger.info("Found %d repositories. Cloning...", len(paths))
        for key in paths:
            if (self.root / key).exists() or self.library.exists(key):
                self.logger.info("Skipping %s (already exists)", key)
                report.skipped.append(key)
                continue
            try:
                self._clone_key(key)
            except CloneError as exc:
                self.logger.error("Failed to clone %s: %s", key, exc)
                report.failed.append((key, str(exc)))
                continue
            report.succeeded.append(key)
        return report

    # Drop

    def drop(
        self,
        target: RepoPattern | Path,
        delete: bool | None = None,
        force: bool | None = None,
    ) -> DropReport:
        """Drop every repository matching ``target``.

        ``target`` is a pattern relative to the workspace root, or an existing
        directory used as-is.
        """
        if isinstance(target, RepoPattern):
            repos = self.search(target)
            label = target.full_path()
        else:
            repos = find_repositories(Path(target), skip=self._skip())
            label = str(target)

        report = DropReport()
        if not repos:
            self.logger.warning("No repositories found matching pattern: %s", label)
            return report
        for repo in repos:
            report.add(self.drop_repository(repo, delete, force))
        return report

    def drop_all(
        self,
        directory: Path | None = None,
        delete: bool | None = None,
        force: bool | None = None,
    ) -> DropReport:
        """Drop every repository under ``directory`` (default: cwd); never stops early."""
        base = Path(directory if directory is not None else os.getcwd())
        repos = find_repositories(base, skip=self._skip())
        report = DropReport()
        if not repos:
            self.logger.info("No repositories found in %s", base)
            return report

        self.logger.info("Found %d repositories in %s", len(repos), base)
        for repo in repos:
            report.add(self.drop_repository(repo, delete, force))

        if report.dropped:
            self.logger.info("Dropped %d repositories", report.dropped)
        if report.skipped:
            self.logger.warning("Skipped %d repositories - use --force to drop anyway", report.skipped)
        if report.failed:
            self.logger.error("Failed to drop %d repositories", report.failed)
        return report

    def drop_repository(
        self,
        repo: Path,
        delete: bool | None = None,
        force: bool | None = None,
    ) -> DropOutcome:
        """Store (or delete) one repository and remove its working tree."""
        delete = self.config.delete if delete is None else delete
        force = self.config.force if force is None else force
        repo = Path(repo)

        key = self.key_for(repo)
        if key is None:
            self.logger.error("Refusing to drop %s: not inside workspace %s", repo, self.root)
            return DropOutcome(repo, DropAction.FAILED, "outside the workspace root")

        if not force:
            inspection = inspect_repository(repo)
            if not inspection.safe_to_drop:
                reason = _unsafe_reason(inspection)
                self.logger.warning("Skipping repository with %s: %s", reason, repo)
                return DropOutcome(repo, DropAction.SKIPPED, reason)

        if delete:
            self.logger.info("Permanently deleting %s", repo)
            try:
                shutil.rmtree(repo)
            except OSError as exc:
                self.logger.error("Failed to delete %s: %s", repo, exc)
                return DropOutcome(repo, DropAction.FAILED, str(exc))
            return DropOutcome(repo, DropAction.DELETED)

        self.logger.info("Storing %s in library", repo)
        try:
            self.library.store(self.root, key)
        except LibraryError as exc:
            self.logger.error("Failed to store %s: %s", repo, exc)
            return DropOutcome(repo, DropAction.FAILED, str(exc))

        try:
            shutil.rmtree(repo)
        except OSError as exc:
            self.logger.error("Stored %s but failed to remove its working tree: %s", repo, exc)
            return DropOutcome(repo, DropAction.FAILED, str(exc))
        self.logger.info("Dropped %s", repo)
        return DropOutcome(repo, DropAction.DROPPED)


__all__ = [
    "BatchReport",
    "DropAction",
    "DropOutcome",
    "DropReport",
    "LifecycleConfig",
    "LifecycleManager",
]
