"""Flattening, toggling, and lookups over a repository forest."""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path

from ..records import OperationStatus
from .types import FlatRow, RepoForest


def flatten(forest: RepoForest) -> list[FlatRow]:
    """Return visible rows in depth-first pre-order.

    Children of collapsed nodes are skipped. ``full_path`` is the repository's
    display name for repository rows and the ``/``-joined segment path for
    plain directories.
    """
    rows: list[FlatRow] = []
    stack: list[tuple[int, int, tuple[int, ...], str]] = [
        (node_id, 0, (position,), "") for position, node_id in enumerate(forest.roots)
    ]
    stack.reverse()
    while stack:
        node_id, depth, index_path, parent_path = stack.pop()
        node = forest.nodes[node_id]
        joined = f"{parent_path}/{node.name}" if parent_path else node.name
        full_path = node.repo_info.display_name if node.repo_info is not None else joined
        rows.append(FlatRow(node_id=node_id, node=node, depth=depth, index_path=index_path, full_path=full_path))
        if node.expanded and node.has_children:
            for position in range(len(node.children) - 1, -1, -1):
                stack.append((node.children[position], depth + 1, index_path + (position,), joined))
    return rows


def node_at(forest: RepoForest, index_path: tuple[int, ...] | list[int]) -> int | None:
    """Resolve an index path (root position, then child positions) to a node id."""
    if not index_path:
        return None
    siblings = forest.roots
    node_id: int | None = None
    for position in index_path:
        if position < 0 or position >= len(siblings):
            return None
        node_id = siblings[position]
        siblings = forest.nodes[node_id].children
    return node_id


def toggle(forest: RepoForest, index_path: tuple[int, ...] | list[int]) -> bool:
    """Flip ``expanded`` on the addressed node; returns whether anything changed."""
    node_id = node_at(forest, index_path)
    if node_id is None:
        return False
    node = forest.nodes[node_id]
    if not node.has_children:
        return False
    node.expanded = not node.expanded
    return True


def find_repo_node(forest: RepoForest, display_name: str) -> int | None:
    for node_id, node in enumerate(forest.nodes):
        if node.repo_info is not None and node.repo_info.display_name == display_name:
            return node_id
    return None


def update_operation_status(forest: RepoForest, display_name: str, status: OperationStatus) -> bool:
    """Set the operation status of the repository named ``display_name``."""
    node_id = find_repo_node(forest, display_name)
    if node_id is None:
        return False
    node = forest.nodes[node_id]
    node.repo_info = replace(node.repo_info, operation_status=status)
    return True


def _subtree(forest: RepoForest, node_id: int | None) -> list[int]:
    pending = list(forest.child_ids(None) if node_id is None else [node_id])
    collected: list[int] = []
    while pending:
        current = pending.pop()
        collected.append(current)
        pending.extend(forest.nodes[current].children)
    return collected


def count_repos(forest: RepoForest, node_id: int | None = None) -> int:
    """Count repositories in the subtree at ``node_id`` (whole forest if ``None``)."""
    return sum(1 for current in _subtree(forest, node_id) if forest.nodes[current].is_repo)


def collect_repo_paths(forest: RepoForest, node_id: int | None = None) -> list[Path]:
    """Return repository paths in the subtree at ``node_id``, sorted by display name."""
    records = [
        forest.nodes[current].repo_info
        for current in _subtree(forest, node_id)
        if forest.nodes[current].repo_info is not None
    ]
    records.sort(key=lambda record: record.display_name)
    return [record.path for record in records]


def set_all_expanded(forest: RepoForest, expanded: bool) -> None:
    """Expand or collapse every node that has children."""
    for node in forest.nodes:
        if node.has_children:
            node.expanded = expanded
