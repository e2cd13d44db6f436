"""Git-facing helpers: metadata reads, subprocess commands, inspection, discovery.

Only ``commands`` launches ``git``; everything else reads metadata files.
"""

from __future__ import annotations

from .discovery import find_repositories, find_submodules, parse_submodules
from .inspect import (
    RepositoryInspection,
    build_library_record,
    build_repository_record,
    classify,
    inspect_repository,
    last_activity,
    repository_size,
)

__all__ = [
    "RepositoryInspection",
    "build_library_record",
    "build_repository_record",
    "classify",
    "find_repositories",
    "find_submodules",
    "inspect_repository",
    "last_activity",
    "parse_submodules",
    "repository_size",
]
