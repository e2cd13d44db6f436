"""CLI dispatch and output tests.

Runs ``workset.cli.main`` inside throwaway workspaces with the user config
and logging setup patched out, and checks exit codes plus printed summaries.
"""

from __future__ import annotations

import contextlib
import io
import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from repo_fixtures import make_committed_repo, requires_git

from workset import cli
from workset.workspace import find_workspace_root


class _CliCase(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name).resolve()
        previous_cwd = Path.cwd()
        os.chdir(self.root)
        self.addCleanup(os.chdir, previous_cwd)
        self.addCleanup(self._tmp.cleanup)
        for patcher in (
            mock.patch("workset.cli.configure_logging"),
            mock.patch("workset.config.CONFIG_PATH", self.root / "user-config.json"),
        ):
            patcher.start()
            self.addCleanup(patcher.stop)

    def run_cli(self, *argv: str) -> tuple[int, str, str]:
        stdout = io.StringIO()
        stderr = io.StringIO()
        with contextlib.redirect_stdout(stdout), contextlib.redirect_stderr(stderr):
            code = cli.main(list(argv))
        return code, stdout.getvalue(), stderr.getvalue()


class CliWorkspaceTests(_CliCase):
    def test_commands_outside_workspace_fail(self) -> None:
        if find_workspace_root(self.root) is not None:
            self.skipTest("temp directory is inside a workspace")
        code, stdout, stderr = self.run_cli("list")
        self.assertEqual(code, 1)
        self.assertEqual(stdout, "")
        self.assertIn("workset init", stderr)

    def test_init_is_idempotent(self) -> None:
        code, stdout, _stderr = self.run_cli("init")
        self.assertEqual(code, 0)
        self.assertIn(f"✓ Initialized workspace at {self.root}", stdout)

        code, stdout, _stderr = self.run_cli("init")
        self.assertEqual(code, 0)
        self.assertIn("already initialized", stdout)

    def test_empty_workspace_listing(self) -> None:
        self.run_cli("init")
        code, stdout, _stderr = self.run_cli("ls")
        self.assertEqual(code, 0)
        self.assertEqual(stdout.strip(), "No repositories found in workspace")

    def test_invalid_log_level_is_a_usage_error(self) -> None:
        with self.assertRaises(SystemExit) as ctx, contextlib.redirect_stderr(io.StringIO()):
            cli.main(["--log-level", "chatty", "status"])
        self.assertEqual(ctx.exception.code, 2)

    def test_owner_pattern_clones_every_listed_repository(self) -> None:
        self.run_cli("init")
        with mock.patch("workset.remotes.Remote.list_repo_paths", return_value=[]) as listing:
            code, stdout, _stderr = self.run_cli("clone", "github.com/acme")
        listing.assert_called_once()
        self.assertEqual(code, 0)
        self.assertEqual(stdout.strip(), "Cloned 0 repositories (0 skipped, 0 failed)")

    def test_config_lists_defaults_outside_workspace(self) -> None:
        code, stdout, _stderr = self.run_cli("config")
        self.assertEqual(code, 0)
        self.assertEqual(
            stdout.splitlines(),
            ["log_level = WARNING", "fetch_on_restore = true", "watch_debounce_seconds = 0.5"],
        )

    def test_config_persists_a_setting(self) -> None:
        code, stdout, _stderr = self.run_cli("config", "fetch_on_restore", "no")
        self.assertEqual(code, 0)
        self.assertEqual(stdout.strip(), "fetch_on_restore = false")
        self.assertTrue((self.root / "user-config.json").is_file())

        code, stdout, _stderr = self.run_cli("config", "fetch_on_restore")
        self.assertEqual(stdout.strip(), "fetch_on_restore = false")

    def test_config_normalizes_log_level(self) -> None:
        code, stdout, _stderr = self.run_cli("config", "log_level", "warn")
        self.assertEqual(code, 0)
        self.assertEqual(stdout.strip(), "log_level = WARNING")

    def test_config_rejects_out_of_range_debounce(self) -> None:
        code, stdout, stderr = self.run_cli("config", "watch_debounce_seconds", "0")
        self.assertEqual(code, 1)
        self.assertEqual(stdout, "")
        self.assertIn("error:", stderr)
        self.assertFalse((self.root / "user-config.json").exists())

    def test_search_without_hits_exits_nonzero(self) -> None:
        self.run_cli("init")
        code, stdout, _stderr = self.run_cli("search", "nothing")
        self.assertEqual(code, 1)
        self.assertEqual(stdout, "")


@requires_git
class CliRepositoryTests(_CliCase):
    def setUp(self) -> None:
        super().setUp()
        self.run_cli("init")
        make_committed_repo(self.root / "github.com" / "acme" / "clean")
        dirty = make_committed_repo(self.root / "github.com" / "acme" / "dirty")
        (dirty / "wip.txt").write_text("draft\n", encoding="utf-8")

    def test_list_renders_tree(self) -> None:
        code, stdout, _stderr = self.run_cli("list")
        self.assertEqual(code, 0)
        lines = stdout.splitlines()
        self.assertEqual(lines[0], f"Repositories in workspace ({self.root}):")
        self.assertIn("▾ github.com/", lines)
        self.assertTrue(any("clean  ✓ clean" in line for line in lines))
        self.assertTrue(any("dirty  ⚠ modified" in line for line in lines))

    def test_status_summarizes_workspace_and_library(self) -> None:
        code, stdout, _stderr = self.run_cli("status")
        self.assertEqual(code, 0)
        self.assertIn(f"Workspace: {self.root}", stdout)
        self.assertIn("  0 repositories in library", stdout)
        self.assertIn("Active repositories: 2", stdout)
        self.assertIn("  ✓ 1 clean", stdout)
        self.assertIn("  ⚠ 1 with uncommitted changes", stdout)

    def test_drop_all_then_library_and_search(self) -> None:
        code, stdout, _stderr = self.run_cli("drop")
        self.assertEqual(code, 0)
        self.assertIn("Dropped 1 repositories (1 skipped, 0 failed)", stdout)
        self.assertFalse((self.root / "github.com" / "acme" / "clean").exists())

        code, stdout, _stderr = self.run_cli("library")
        self.assertEqual(code, 0)
        self.assertTrue(any(line.strip().startswith("clean") for line in stdout.splitlines()))

        code, stdout, _stderr = self.run_cli("search", "acme")
        self.assertEqual(code, 0)
        self.assertEqual(
            stdout.splitlines(),
            ["github.com/acme/dirty\tmodified", "github.com/acme/clean\tlibrary"],
        )

    def test_open_restores_dropped_repository(self) -> None:
        self.run_cli("drop", "github.com/acme/clean")
        with mock.patch("workset.git.commands.clone") as clone:
            code, stdout, _stderr = self.run_cli("open", "acme/clean")
        clone.assert_not_called()
        self.assertEqual(code, 0)
        self.assertEqual(stdout.strip(), str(self.root / "github.com" / "acme" / "clean"))
        self.assertTrue((self.root / "github.com" / "acme" / "clean" / "README.md").exists())

    def test_browse_prints_both_sections(self) -> None:
        self.run_cli("drop")
        code, stdout, _stderr = self.run_cli("browse")
        self.assertEqual(code, 0)
        self.assertIn("Workspace (1 repositories):", stdout)
        self.assertIn("Library (1 repositories):", stdout)
        workspace_part, library_part = stdout.split("Library (")
        self.assertIn("dirty", workspace_part)
        self.assertIn("clean", library_part)

    def test_browse_query_filters_sections(self) -> None:
        self.run_cli("drop")
        code, stdout, _stderr = self.run_cli("browse", "clean")
        self.assertEqual(code, 0)
        self.assertIn("Workspace (0 repositories):", stdout)
        self.assertIn("Library (1 repositories):", stdout)
        self.assertNotIn("dirty", stdout)

    def test_forced_delete_of_pattern(self) -> None:
        code, stdout, _stderr = self.run_cli("drop", "github.com/acme/dirty", "--delete", "--force")
        self.assertEqual(code, 0)
        self.assertIn("Dropped 1 repositories (0 skipped, 0 failed)", stdout)
        self.assertFalse((self.root / "github.com" / "acme" / "dirty").exists())


if __name__ == "__main__":
    unittest.main()
