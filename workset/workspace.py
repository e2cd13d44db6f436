"""Workspace root lookup and ``.workset.toml`` loading.

A directory is a workspace root when it holds either a ``.workset.toml`` file
or a ``.workset/`` marker directory. Lookup walks upward from the starting
directory and fails closed with ``NoWorkspaceError``.
"""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from .errors import NoWorkspaceError, WorkspaceConfigError
from .remotes import Remote

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".workset.toml"
MARKER_DIRNAME = ".workset"


@dataclass(frozen=True)
class Workspace:
    """A resolved workspace root with its library and configured remotes."""

    path: Path
    library_path: Path
    remotes: tuple[Remote, ...] = field(default_factory=tuple)
    config_path: Path | None = None


def is_workspace_root(directory: Path) -> bool:
    return (directory / CONFIG_FILENAME).is_file() or (directory / MARKER_DIRNAME).is_dir()


def find_workspace_root(start: Path | None = None) -> Path | None:
    """Walk from ``start`` (default: cwd) toward ``/`` and return the first root."""
    current = Path(start if start is not None else os.getcwd()).resolve()
    for candidate in (current, *current.parents):
        if is_workspace_root(candidate):
            return candidate
    return None


def _resolve_library_path(raw: object, root: Path) -> Path:
    if not isinstance(raw, str) or not raw.strip():
        raise WorkspaceConfigError("'library' must be a non-empty path string")
    library = Path(raw.strip()).expanduser()
    if not library.is_absolute():
        library = root / library
    return library.resolve()


def parse_workspace_config(text: str, root: Path, config_path: Path | None = None) -> Workspace:
    """Build a ``Workspace`` rooted at ``root`` from ``.workset.toml`` text.

    Recognized keys are ``library`` (relative paths resolve against ``root``,
    ``~`` is expanded) and ``remotes`` (array of tables). Unknown keys are
    ignored with a warning.
    """
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        raise WorkspaceConfigError(f"Failed to parse workspace config {config_path or CONFIG_FILENAME}: {exc}") from exc

    for key in sorted(set(data) - {"library", "remotes"}):
        logger.warning("Ignoring unknown key %r in %s", key, config_path or CONFIG_FILENAME)

    library_path = root / MARKER_DIRNAME
    if "library" in data:
        library_path = _resolve_library_path(data["library"], root)

    raw_remotes = data.get("remotes", [])
    if not isinstance(raw_remotes, list):
        raise WorkspaceConfigError("'remotes' must be an array of tables")
    remotes = tuple(Remote.from_mapping(item) for item in raw_remotes)

    return Workspace(path=root, library_path=library_path, remotes=remotes, config_path=config_path)


def load_workspace(start: Path | None = None) -> Workspace:
    """Locate and load the workspace governing ``start``.

    Raises ``NoWorkspaceError`` when no marker exists up to the filesystem
    root, and ``WorkspaceConfigError`` when ``.workset.toml`` is unreadable or
    invalid. The library directory is created if missing.
    """
    origin = Path(start if start is not None else os.getcwd())
    root = find_workspace_root(origin)
    if root is None:
        raise NoWorkspaceError(origin)

    config_path = root / CONFIG_FILENAME
    if config_path.is_file():
        logger.debug("Loading workspace configuration from %s", config_path)
        try:
            text = config_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise WorkspaceConfigError(f"Failed to read workspace config {config_path}: {exc}") from exc
        workspace = parse_workspace_config(text, root, config_path)
    else:
        workspace = Workspace(path=root, library_path=root / MARKER_DIRNAME)

    try:
        workspace.library_path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise WorkspaceConfigError(f"Failed to create library directory {workspace.library_path}: {exc}") from exc

    logger.debug("Loaded workspace %s (library %s)", workspace.path, workspace.library_path)
    return workspace


def init_workspace(path: Path | None = None) -> tuple[Workspace, bool]:
    """Create the ``.workset/`` marker in ``path``; returns ``(workspace, created)``."""
    root = Path(path if path is not None else os.getcwd()).resolve()
    marker = root / MARKER_DIRNAME
    created = not marker.is_dir()
    if created:
        try:
            marker.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise WorkspaceConfigError(f"Failed to create {marker}: {exc}") from exc
    return Workspace(path=root, library_path=marker), created


__all__ = [
    "CONFIG_FILENAME",
    "MARKER_DIRNAME",
    "Workspace",
    "find_workspace_root",
    "init_workspace",
    "is_workspace_root",
    "load_workspace",
    "parse_workspace_config",
]
