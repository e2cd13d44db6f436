from __future__ import annotations

import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from workset.git.discovery import find_repositories, find_submodules, parse_submodules


def _fake_repo(path: Path) -> Path:
    (path / ".git").mkdir(parents=True)
    return path


class FindRepositoriesTests(unittest.TestCase):
    def test_nested_repositories_are_not_reported(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            _fake_repo(root / "a")
            _fake_repo(root / "a" / "nested")
            _fake_repo(root / "b" / "c")

            found = find_repositories(root)

            self.assertEqual([path.relative_to(root).as_posix() for path in found], ["a", "b/c"])

    def test_git_file_marks_a_repository(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            linked = root / "x" / "linked"
            linked.mkdir(parents=True)
            (linked / ".git").write_text("gitdir: /elsewhere\n", encoding="utf-8")

            self.assertEqual(find_repositories(root), [linked])

    def test_root_that_is_a_repository_is_the_only_result(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = _fake_repo(Path(tmp).resolve() / "repo")
            _fake_repo(root / "vendor" / "inner")

            self.assertEqual(find_repositories(root), [root])

    def test_results_are_sorted_by_path(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            for name in ("zeta", "alpha", "mid/beta"):
                _fake_repo(root / name)

            found = [path.relative_to(root).as_posix() for path in find_repositories(root)]

            self.assertEqual(found, ["alpha", "mid/beta", "zeta"])

    def test_skip_prunes_directories(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            _fake_repo(root / "keep")
            library = root / ".workset"
            _fake_repo(library / "github.com" / "acme" / "stored")

            self.assertEqual(find_repositories(root, skip={library}), [root / "keep"])

    @unittest.skipIf(not hasattr(os, "symlink"), "symlinks are required")
    def test_symlinked_directories_are_not_followed(self) -> None:
        with tempfile.TemporaryDirectory() as tmp, tempfile.TemporaryDirectory() as outside:
            root = Path(tmp).resolve()
            _fake_repo(Path(outside) / "elsewhere")
            try:
                os.symlink(Path(outside), root / "link", target_is_directory=True)
            except OSError:
                self.skipTest("cannot create symlinks here")

            self.assertEqual(find_repositories(root), [])

    def test_missing_root_yields_nothing(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            self.assertEqual(find_repositories(Path(tmp) / "missing"), [])

    def test_unreadable_directory_is_skipped_with_warning(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            _fake_repo(root / "open" / "repo")
            locked = root / "locked"
            _fake_repo(locked / "hidden")
            real_scandir = os.scandir

            def scandir(path="."):
                if Path(path) == locked:
                    raise PermissionError(13, "Permission denied", str(path))
                return real_scandir(path)

            with mock.patch("workset.git.discovery.os.scandir", side_effect=scandir):
                with self.assertLogs("workset.git.discovery", level="WARNING") as logs:
                    found = find_repositories(root)

            self.assertEqual(found, [root / "open" / "repo"])
            self.assertTrue(any("locked" in line for line in logs.output))


class SubmoduleParsingTests(unittest.TestCase):
    def test_records_need_both_path_and_url(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            repo = Path(tmp).resolve()
            _fake_repo(repo / "libs" / "core")
            text = (
                '[submodule "core"]\n'
                "\tpath = libs/core\n"
                "\turl = https://example.com/core.git\n"
                '[submodule "docs"]\n'
                "\turl = https://example.com/docs.git\n"
                '[submodule "theme"]\n'
                "\tpath = theme\n"
                "\turl = ../theme.git\n"
            )

            records = parse_submodules(text, repo)

            self.assertEqual([record.name for record in records], ["core", "theme"])
            self.assertTrue(records[0].initialized)
            self.assertEqual(records[0].path, "libs/core")
            self.assertEqual(records[0].url, "https://example.com/core.git")
            self.assertFalse(records[1].initialized)

    def test_find_submodules_reads_gitmodules_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            repo = Path(tmp).resolve()
            (repo / ".gitmodules").write_text(
                '[submodule "core"]\n\tpath = core\n\turl = https://example.com/core.git\n',
                encoding="utf-8",
            )

            records = find_submodules(repo)

            self.assertEqual(len(records), 1)
            self.assertFalse(records[0].initialized)

    def test_missing_gitmodules_is_empty(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            self.assertEqual(find_submodules(Path(tmp)), [])


if __name__ == "__main__":
    unittest.main()
