"""Exception hierarchy for workspace, library, and clone failures.

Listing paths never raise for damaged repositories; these types cover the
conditions that are fatal to one command or one repository operation.
"""

from __future__ import annotations


class WorksetError(Exception):
    """Base class for all errors raised by workset."""


class NoWorkspaceError(WorksetError):
    """No workspace marker was found between ``start`` and the filesystem root."""

    def __init__(self, start: object) -> None:
        self.start = start
        super().__init__(
            f"You're not in a workspace (searched upward from {start}).\n"
            "Run 'workset init' in the directory that should hold your repositories."
        )


class WorkspaceConfigError(WorksetError):
    """``.workset.toml`` exists but cannot be read or validated."""


class PatternError(WorksetError):
    """A repository pattern is empty or malformed."""


class LibraryError(WorksetError):
    """A library store/restore/key operation failed for one repository."""


class CloneError(WorksetError):
    """Cloning a repository failed; ``str(exc)`` carries git's own message."""


class RemoteError(WorksetError):
    """A remote provider CLI could not list repositories."""


__all__ = [
    "WorksetError",
    "NoWorkspaceError",
    "WorkspaceConfigError",
    "PatternError",
    "LibraryError",
    "CloneError",
    "RemoteError",
]
