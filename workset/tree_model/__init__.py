"""Repository forest creation, filtering, navigation, and row formatting.

Records are grouped by their ``/``-separated display names into an arena
forest; rows are produced by flattening it with collapsed subtrees skipped.
"""

from __future__ import annotations

from .build import build_library_tree, build_tree, insert_record, sort_records
from .filtering import filter_records, filter_tree
from .navigation import (
    collect_repo_paths,
    count_repos,
    find_repo_node,
    flatten,
    node_at,
    set_all_expanded,
    toggle,
    update_operation_status,
)
from .rendering import format_row, format_size, format_status_badge, format_time_ago
from .types import FlatRow, RepoForest, TreeNode

__all__ = [
    "FlatRow",
    "RepoForest",
    "TreeNode",
    "build_library_tree",
    "build_tree",
    "collect_repo_paths",
    "count_repos",
    "filter_records",
    "filter_tree",
    "find_repo_node",
    "flatten",
    "format_row",
    "format_size",
    "format_status_badge",
    "format_time_ago",
    "insert_record",
    "node_at",
    "set_all_expanded",
    "sort_records",
    "toggle",
    "update_operation_status",
]
