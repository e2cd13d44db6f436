"""Repository record datatypes shared by listing, lifecycle, and tree code."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class RepoStatus(Enum):
    """Safety classification of a repository."""

    NO_COMMITS = "no_commits"
    CLEAN = "clean"
    DIRTY = "dirty"
    UNPUSHED = "unpushed"

    @property
    def label(self) -> str:
        return {
            RepoStatus.NO_COMMITS: "no commits",
            RepoStatus.CLEAN: "clean",
            RepoStatus.DIRTY: "modified",
            RepoStatus.UNPUSHED: "unpushed",
        }[self]


class OperationStatus(Enum):
    """Transient UI feedback for an in-flight drop/restore."""

    NONE = "none"
    IN_PROGRESS = "in_progress"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class SubmoduleRecord:
    """One ``[submodule "name"]`` declaration from ``.gitmodules``."""

    name: str
    path: str
    url: str
    initialized: bool


@dataclass(frozen=True)
class RepositoryRecord:
    """One repository as seen by a single discovery/listing pass."""

    path: Path
    display_name: str
    status: RepoStatus
    modification_time: float | None = None
    size_bytes: int | None = None
    is_submodule: bool = False
    submodule_initialized: bool = False
    operation_status: OperationStatus = OperationStatus.NONE


__all__ = [
    "OperationStatus",
    "RepoStatus",
    "RepositoryRecord",
    "SubmoduleRecord",
]
