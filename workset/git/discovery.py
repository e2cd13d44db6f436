"""Top-level repository discovery and ``.gitmodules`` parsing."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from ..records import SubmoduleRecord
from .metadata import parse_git_config

logger = logging.getLogger(__name__)

GITMODULES_FILENAME = ".gitmodules"


def _has_git_entry(directory: Path) -> bool:
    try:
        return os.path.lexists(directory / ".git")
    except OSError:
        return False


def find_repositories(root: Path, skip: set[Path] | None = None) -> list[Path]:
    """Return top-level repositories at or below ``root``, sorted by path.

    A directory holding a ``.git`` entry is a result and is not descended
    into, so repositories nested inside another repository's tree are never
    reported. Symlinked directories are not followed. ``skip`` holds resolved
    directories (such as the library) that are pruned entirely. Unreadable
    subtrees are logged and skipped.
    """
    root = Path(root)
    skipped = {path.resolve() for path in (skip or set())}
    found: list[Path] = []

    def walk(directory: Path) -> None:
        if skipped and directory.resolve() in skipped:
            return
        if _has_git_entry(directory):
            found.append(directory)
            return
        try:
            with os.scandir(directory) as entries:
                children = []
                for entry in entries:
                    if entry.name == ".git":
                        continue
                    try:
                        if entry.is_dir(follow_symlinks=False):
                            children.append(Path(entry.path))
                    except OSError:
                        continue
        except OSError as exc:
            logger.warning("Skipping unreadable directory %s: %s", directory, exc)
            return
        for child in sorted(children, key=lambda path: path.name):
            walk(child)

    if root.is_dir():
        walk(root)
    return found


def parse_submodules(text: str, repo_path: Path) -> list[SubmoduleRecord]:
    """Build submodule records from ``.gitmodules`` text.

    A section yields a record only when both ``path`` and ``url`` are set.
    """
    config = parse_git_config(text)
    records: list[SubmoduleRecord] = []
    for name in config.subsections("submodule"):
        sub_path = config.get("submodule", name, "path")
        url = config.get("submodule", name, "url")
        if not sub_path or not url:
            continue
        records.append(
            SubmoduleRecord(
                name=name,
                path=sub_path,
                url=url,
                initialized=_has_git_entry(Path(repo_path) / sub_path),
            )
        )
    return records


def find_submodules(repo_path: Path) -> list[SubmoduleRecord]:
    """Return submodules declared by the repository at ``repo_path``."""
    try:
        text = (Path(repo_path) / GITMODULES_FILENAME).read_text(encoding="utf-8", errors="replace")
    except OSError:
        return []
    return parse_submodules(text, repo_path)


__all__ = ["find_repositories", "find_submodules", "parse_submodules"]
