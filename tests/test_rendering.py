from __future__ import annotations

import unittest
from dataclasses import replace
from pathlib import Path

from workset.records import OperationStatus, RepositoryRecord, RepoStatus
from workset.tree_model import build_tree, flatten, format_row, format_size, format_time_ago
from workset.tree_model.rendering import DAY, DIR_COLOR, GB, KB, MB, RESET

NOW = 1_700_000_000.0


class TimeAgoTests(unittest.TestCase):
    def test_units_round_to_nearest(self) -> None:
        cases = [
            (30, "30s ago"),
            (90, "2m ago"),
            (89 * 60, "1h ago"),
            (3 * DAY, "3d ago"),
            (45 * DAY, "2mo ago"),
            (400 * DAY, "1y ago"),
        ]
        for elapsed, expected in cases:
            with self.subTest(elapsed=elapsed):
                self.assertEqual(format_time_ago(NOW - elapsed, NOW), expected)

    def test_future_timestamp_is_just_now(self) -> None:
        self.assertEqual(format_time_ago(NOW + 120, NOW), "just now")


class SizeTests(unittest.TestCase):
    def test_binary_units(self) -> None:
        self.assertEqual(format_size(512), "512 B")
        self.assertEqual(format_size(KB + KB // 2), "1.5 KB")
        self.assertEqual(format_size(5 * MB), "5.0 MB")
        self.assertEqual(format_size(2 * GB), "2.0 GB")


class FormatRowTests(unittest.TestCase):
    def _rows(self, *records: RepositoryRecord):
        return flatten(build_tree(records))

    def test_directory_and_repository_rows(self) -> None:
        record = RepositoryRecord(
            path=Path("/ws/github.com/acme/widgets"),
            display_name="github.com/acme/widgets",
            status=RepoStatus.CLEAN,
            modification_time=NOW - 60,
        )
        rows = self._rows(record)

        self.assertEqual(format_row(rows[0], now=NOW), "▾ github.com/")
        self.assertEqual(format_row(rows[2], now=NOW), "      widgets  ✓ clean  1m ago")

    def test_collapsed_directory_marker(self) -> None:
        forest = build_tree([RepositoryRecord(path=Path("/ws/a/b"), display_name="a/b", status=RepoStatus.CLEAN)])
        forest.nodes[forest.roots[0]].expanded = False
        self.assertEqual(format_row(flatten(forest)[0]), "▸ a/")

    def test_optional_columns(self) -> None:
        record = RepositoryRecord(
            path=Path("/lib/repo"),
            display_name="repo",
            status=RepoStatus.DIRTY,
            size_bytes=2 * MB,
            operation_status=OperationStatus.FAILED,
        )
        row = self._rows(record)[0]

        self.assertEqual(format_row(row, now=NOW), "  repo  ⚠ modified  2.0 MB  ✗")
        self.assertEqual(format_row(row, now=NOW, show_status=False, show_size=False), "  repo  ✗")

    def test_uninitialized_submodule_is_labelled(self) -> None:
        record = RepositoryRecord(
            path=Path("/ws/lib"),
            display_name="lib",
            status=RepoStatus.NO_COMMITS,
            is_submodule=True,
        )
        self.assertIn("(not initialized)", format_row(self._rows(record)[0]))

    def test_color_wraps_directory_names(self) -> None:
        rows = self._rows(RepositoryRecord(path=Path("/ws/a/b"), display_name="a/b", status=RepoStatus.CLEAN))
        self.assertEqual(format_row(rows[0], use_color=True), f"▾ {DIR_COLOR}a/{RESET}")

    def test_in_progress_marker(self) -> None:
        record = RepositoryRecord(path=Path("/ws/r"), display_name="r", status=RepoStatus.CLEAN)
        row = self._rows(replace(record, operation_status=OperationStatus.IN_PROGRESS))[0]
        self.assertTrue(format_row(row).endswith("…"))


if __name__ == "__main__":
    unittest.main()
