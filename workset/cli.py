"""Command-line front door for workset.

Parses subcommands, resolves the workspace governing the current directory,
and dispatches into the lifecycle manager. Batch commands print a summary;
per-repository detail goes to the log.
"""

from __future__ import annotations

import argparse
import os
import sys
import time
from collections import Counter
from pathlib import Path

from . import config
from .errors import NoWorkspaceError, WorksetError
from .browser import BrowserState, Section
from .lifecycle import BatchReport, DropReport, LifecycleConfig, LifecycleManager
from .log import LEVELS, LoggingConfig, configure_logging, level_for_verbosity, normalize_level_name
from .pattern import RepoPattern
from .records import RepositoryRecord, RepoStatus
from .tree_model import build_tree, filter_records, flatten, format_row, set_all_expanded
from .watch import WorkspaceWatcher
from .workspace import Workspace, init_workspace, load_workspace


CONFIG_KEYS = ("log_level", "fetch_on_restore", "watch_debounce_seconds")
TRUE_WORDS = {"true", "yes", "on", "1"}
FALSE_WORDS = {"false", "no", "off", "0"}


def _log_level(value: str) -> str:
    """argparse type for log level names."""
    normalized = normalize_level_name(value)
    if normalized is None:
        raise argparse.ArgumentTypeError(f"invalid log level: {value!r} (choose from {', '.join(LEVELS)})")
    return normalized


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="workset",
        description="Keep a workspace of git repositories small by parking idle ones in a library.",
    )
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Increase log detail (-v info, -vv debug).")
    parser.add_argument("--log-level", type=_log_level, default=None, help="Explicit log level (overrides -v).")
    parser.add_argument("--no-color", action="store_true", help="Disable color output even on TTY.")
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")
    sub.required = True

    sub.add_parser("init", help="Initialize a workspace in the current directory.")

    open_parser = sub.add_parser("open", aliases=["clone"], help="Open a repository: existing, from library, or cloned.")
    open_parser.add_argument("pattern", help="[provider/]path, e.g. github.com/user/repo or github.com/user")

    restore_parser = sub.add_parser("restore", help="Restore library repositories matching a pattern.")
    restore_parser.add_argument("pattern")

    drop_parser = sub.add_parser("drop", help="Move repositories into the library (default: all under cwd).")
    drop_parser.add_argument("pattern", nargs="?", default=None)
    drop_parser.add_argument("--delete", action="store_true", help="Delete permanently instead of storing.")
    drop_parser.add_argument("--force", action="store_true", help="Drop even with uncommitted or unpushed work.")

    list_parser = sub.add_parser("list", aliases=["ls"], help="List workspace repositories with their status.")
    list_parser.add_argument("--submodules", action="store_true", help="Include submodules as nested entries.")
    list_parser.add_argument("--watch", action="store_true", help="Redraw whenever the workspace changes.")

    sub.add_parser("status", help="Show a workspace and library summary.")
    sub.add_parser("library", help="List repositories stored in the library.")

    search_parser = sub.add_parser("search", help="Fuzzy-search workspace and library repositories.")
    search_parser.add_argument("query")

    browse_parser = sub.add_parser("browse", help="Show workspace and library trees one after the other.")
    browse_parser.add_argument("query", nargs="?", default="", help="Fuzzy filter applied to both trees.")

    config_parser = sub.add_parser("config", help="Show or change per-user preferences.")
    config_parser.add_argument("key", nargs="?", choices=CONFIG_KEYS)
    config_parser.add_argument("value", nargs="?")
    return parser


def _make_manager(workspace: Workspace) -> LifecycleManager:
    return LifecycleManager(
        LifecycleConfig.from_workspace(workspace, fetch_on_restore=config.load_fetch_on_restore())
    )


def _render_records(records: list[RepositoryRecord], use_color: bool, show_status: bool = True) -> list[str]:
    forest = build_tree(records)
    set_all_expanded(forest, True)
    now = time.time()
    return [format_row(row, now=now, show_status=show_status, use_color=use_color) for row in flatten(forest)]


def summarize_statuses(records: list[RepositoryRecord]) -> Counter:
    return Counter(record.status for record in records)


def _print_batch(report: BatchReport, verb: str) -> None:
    print(f"{verb} {len(report.succeeded)} repositories ({len(report.skipped)} skipped, {len(report.failed)} failed)")
    for key, reason in report.failed:
        print(f"  ✗ {key}: {reason}", file=sys.stderr)


def _print_drop(report: DropReport) -> None:
    print(f"Dropped {report.dropped} repositories ({report.skipped} skipped, {report.failed} failed)")
    if report.skipped:
        print("  Use --force to drop repositories with uncommitted or unpushed work.")


def cmd_init() -> int:
    workspace, created = init_workspace(Path.cwd())
    if created:
        print(f"✓ Initialized workspace at {workspace.path}")
        print(f"  Library: {workspace.library_path}")
    else:
        print(f"✓ Workspace already initialized at {workspace.path}")
    return 0


def cmd_open(manager: LifecycleManager, pattern: RepoPattern) -> int:
    if LifecycleManager.is_owner_pattern(pattern):
        report = manager.clone_many(pattern.provider or "", pattern.path)
        _print_batch(report, "Cloned")
        return 1 if report.failed else 0
    print(manager.open(pattern))
    return 0


def cmd_drop(manager: LifecycleManager, target: str | None, delete: bool, force: bool) -> int:
    if target is None:
        report = manager.drop_all(Path.cwd(), delete=delete, force=force)
    elif Path(target).is_dir():
        report = manager.drop(Path(target).resolve(), delete=delete, force=force)
    else:
        report = manager.drop(RepoPattern.parse(target), delete=delete, force=force)
    _print_drop(report)
    return 1 if report.failed else 0


def _print_workspace_list(workspace: Workspace, manager: LifecycleManager, submodules: bool, use_color: bool) -> None:
    records = manager.list_workspace(include_submodules=submodules)
    if not records:
        print("No repositories found in workspace")
        return
    print(f"Repositories in workspace ({workspace.path}):")
    print()
    for line in _render_records(records, use_color):
        print(line)


def cmd_list(workspace: Workspace, manager: LifecycleManager, submodules: bool, watch: bool, use_color: bool) -> int:
    _print_workspace_list(workspace, manager, submodules, use_color)
    if not watch:
        return 0

    watcher = WorkspaceWatcher(
        workspace.path,
        skip=[workspace.library_path],
        debounce_seconds=config.load_watch_debounce_seconds(),
    )
    watcher.start()
    try:
        while True:
            time.sleep(watcher.poll_interval)
            if watcher.consume_stale():
                print()
                _print_workspace_list(workspace, manager, submodules, use_color)
    except KeyboardInterrupt:
        return 0
    finally:
        watcher.stop()


def cmd_status(workspace: Workspace, manager: LifecycleManager) -> int:
    print(f"Workspace: {workspace.path}")
    print()
    print(f"Library: {workspace.library_path}")
    print(f"  {len(manager.library.list())} repositories in library")
    print()

    records = manager.list_workspace(include_submodules=False)
    counts = summarize_statuses(records)
    print(f"Active repositories: {len(records)}")
    if counts[RepoStatus.CLEAN]:
        print(f"  ✓ {counts[RepoStatus.CLEAN]} clean")
    modified = counts[RepoStatus.DIRTY] + counts[RepoStatus.NO_COMMITS]
    if modified:
        print(f"  ⚠ {modified} with uncommitted changes")
    if counts[RepoStatus.UNPUSHED]:
        print(f"  ⚠ {counts[RepoStatus.UNPUSHED]} with unpushed commits")
    return 0


def cmd_library(manager: LifecycleManager, use_color: bool) -> int:
    records = manager.list_library()
    if not records:
        print("Library is empty")
        return 0
    for line in _render_records(records, use_color, show_status=False):
        print(line)
    return 0


def cmd_search(manager: LifecycleManager, query: str) -> int:
    workspace_hits = filter_records(manager.list_workspace(include_submodules=False), query)
    checked_out = {record.display_name for record in workspace_hits}
    library_hits = [
        record
        for record in filter_records(manager.list_library(), query)
        if record.display_name not in checked_out
    ]
    for record in workspace_hits:
        print(f"{record.display_name}\t{record.status.label}")
    for record in library_hits:
        print(f"{record.display_name}\tlibrary")
    return 0 if workspace_hits or library_hits else 1


def cmd_browse(manager: LifecycleManager, query: str, use_color: bool) -> int:
    state = BrowserState(manager.list_workspace(include_submodules=False), manager.list_library())
    if query:
        state.set_query(query)
    now = time.time()
    for section, title in ((Section.WORKSPACE, "Workspace"), (Section.LIBRARY, "Library")):
        print(f"{title} ({state.repo_count(section)} repositories):")
        for row in state.rows(section):
            print(format_row(row, now=now, show_status=section is Section.WORKSPACE, use_color=use_color))
        print()
    return 0


def _current_settings() -> dict[str, object]:
    return {
        "log_level": config.load_log_level() or "WARNING",
        "fetch_on_restore": config.load_fetch_on_restore(),
        "watch_debounce_seconds": config.load_watch_debounce_seconds(),
    }


def _format_setting(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _save_setting(key: str, value: str) -> str | None:
    """Persist one preference; returns an error message for invalid values."""
    if key == "log_level":
        level = normalize_level_name(value)
        if level is None:
            return f"invalid log level: {value!r} (choose from {', '.join(LEVELS)})"
        config.save_log_level(level)
        return None

    if key == "fetch_on_restore":
        word = value.strip().lower()
        if word not in TRUE_WORDS | FALSE_WORDS:
            return f"invalid boolean: {value!r} (use true or false)"
        config.save_fetch_on_restore(word in TRUE_WORDS)
        return None

    try:
        seconds = float(value)
    except ValueError:
        return f"invalid number of seconds: {value!r}"
    if not 0 < seconds <= config.MAX_DEBOUNCE_SECONDS:
        return f"watch_debounce_seconds must be in (0, {config.MAX_DEBOUNCE_SECONDS:g}]"
    config.save_watch_debounce_seconds(seconds)
    return None


def cmd_config(key: str | None, value: str | None) -> int:
    if key is None:
        for name, current in _current_settings().items():
            print(f"{name} = {_format_setting(current)}")
        return 0
    if value is not None:
        error = _save_setting(key, value)
        if error is not None:
            print(f"error: {error}", file=sys.stderr)
            return 1
    print(f"{key} = {_format_setting(_current_settings()[key])}")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Parse ``argv`` (default: ``sys.argv[1:]``), run one command, and return the exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)

    level = args.log_level or level_for_verbosity(args.verbose, base=config.load_log_level())
    configure_logging(LoggingConfig(level=level))
    use_color = not args.no_color and sys.stdout.isatty() and "NO_COLOR" not in os.environ

    try:
        if args.command == "init":
            return cmd_init()
        if args.command == "config":
            return cmd_config(args.key, args.value)

        workspace = load_workspace(Path.cwd())
        manager = _make_manager(workspace)
        if args.command in {"open", "clone"}:
            return cmd_open(manager, RepoPattern.parse(args.pattern))
        if args.command == "restore":
            report = manager.restore(RepoPattern.parse(args.pattern))
            _print_batch(report, "Restored")
            return 1 if report.failed else 0
        if args.command == "drop":
            return cmd_drop(manager, args.pattern, args.delete, args.force)
        if args.command in {"list", "ls"}:
            return cmd_list(workspace, manager, args.submodules, args.watch, use_color)
        if args.command == "status":
            return cmd_status(workspace, manager)
        if args.command == "library":
            return cmd_library(manager, use_color)
        if args.command == "search":
            return cmd_search(manager, args.query)
        if args.command == "browse":
            return cmd_browse(manager, args.query, use_color)
    except NoWorkspaceError as exc:
        print(str(exc), file=sys.stderr)
        return 1
    except WorksetError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    parser.error(f"unknown command: {args.command}")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
