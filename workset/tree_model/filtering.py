"""Query filtering over repository records."""

from __future__ import annotations

from collections.abc import Iterable

from ..fuzzy import fuzzy_matches
from ..records import RepositoryRecord
from .build import build_tree
from .types import RepoForest


def filter_records(records: Iterable[RepositoryRecord], query: str) -> list[RepositoryRecord]:
    """Keep records whose display name fuzzy-matches ``query``, preserving order.

    An empty or whitespace-only query keeps everything.
    """
    records = list(records)
    if not query.strip():
        return records
    return [record for record in records if fuzzy_matches(query.strip(), record.display_name)]


def filter_tree(records: Iterable[RepositoryRecord], query: str) -> RepoForest:
    return build_tree(filter_records(records, query))
