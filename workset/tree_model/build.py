"""Forest construction from repository records."""

from __future__ import annotations

from collections.abc import Iterable

from ..records import RepositoryRecord
from .types import RepoForest


def record_sort_key(record: RepositoryRecord) -> tuple[bool, float, str]:
    """Newest first; records without a timestamp last; ties broken by name."""
    mtime = record.modification_time
    return (mtime is None, -(mtime or 0.0), record.display_name)


def sort_records(records: Iterable[RepositoryRecord]) -> list[RepositoryRecord]:
    return sorted(records, key=record_sort_key)


def insert_record(forest: RepoForest, record: RepositoryRecord) -> int:
    """Insert ``record`` under its ``/``-separated display name; returns its node id.

    Missing directory nodes are created expanded. A new repository leaf starts
    collapsed; if the terminal segment already exists it just gains
    ``repo_info``.
    """
    segments = [segment for segment in record.display_name.split("/") if segment]
    if not segments:
        segments = [record.display_name]

    parent: int | None = None
    for segment in segments[:-1]:
        existing = forest.find_child(parent, segment)
        parent = existing if existing is not None else forest.add_node(segment, parent)

    leaf_name = segments[-1]
    node_id = forest.find_child(parent, leaf_name)
    if node_id is None:
        node_id = forest.add_node(leaf_name, parent, expanded=False)
    forest.nodes[node_id].repo_info = record
    return node_id


def build_tree(records: Iterable[RepositoryRecord]) -> RepoForest:
    """Build a prefix forest; sibling order follows the most recent activity."""
    forest = RepoForest()
    for record in sort_records(records):
        insert_record(forest, record)
    return forest


def build_library_tree(
    library_records: Iterable[RepositoryRecord],
    workspace_records: Iterable[RepositoryRecord],
) -> RepoForest:
    """Build the library forest, hiding entries already checked out in the workspace."""
    checked_out = {record.display_name for record in workspace_records}
    return build_tree(record for record in library_records if record.display_name not in checked_out)
