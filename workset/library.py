"""Library store: bare repositories parked outside the workspace.

Entries mirror the workspace-relative path they came from, so
``<library>/github.com/user/repo`` holds the metadata directory of
``<workspace>/github.com/user/repo``. ``store`` owns only the metadata move;
deleting the working tree afterwards is the caller's decision.
"""

from __future__ import annotations

import errno
import logging
import os
import shutil
import tempfile
from pathlib import Path, PurePosixPath

from .errors import LibraryError
from .git import commands
from .git.inspect import build_library_record
from .git.metadata import looks_like_git_dir, read_head
from .records import RepositoryRecord

logger = logging.getLogger(__name__)

REPLACE_PREFIX = ".workset-replace-"


def normalize_key(key: str) -> str:
    """Return ``key`` as a clean ``/``-joined relative path.

    Raises ``LibraryError`` for empty or absolute keys, backslashes, and
    ``.``/``..`` segments so an entry can never land outside the library.
    """
    text = str(key).strip()
    if "\\" in text:
        raise LibraryError(f"invalid library key {key!r}: backslashes are not allowed")
    if text.startswith("/"):
        raise LibraryError(f"invalid library key {key!r}: must be relative")
    parts = [part for part in text.split("/") if part]
    if not parts:
        raise LibraryError(f"invalid library key {key!r}: empty")
    if any(part in {".", ".."} for part in parts):
        raise LibraryError(f"invalid library key {key!r}: '.' and '..' segments are not allowed")
    return str(PurePosixPath(*parts))


def _remove_path(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink()


def _move_metadata(source: Path, dest: Path) -> None:
    """Move ``source`` to the absent path ``dest``.

    Within one filesystem this is a rename. Across filesystems the tree is
    copied into a staging directory beside ``dest`` and renamed into place;
    ``source`` is deleted only after ``dest`` is complete. If this raises,
    ``source`` is untouched and ``dest`` does not exist.
    """
    try:
        os.replace(source, dest)
        return
    except OSError as exc:
        if exc.errno != errno.EXDEV:
            raise

    staging = Path(tempfile.mkdtemp(prefix=REPLACE_PREFIX, dir=dest.parent))
    try:
        shutil.copytree(source, staging / dest.name, symlinks=True)
        os.replace(staging / dest.name, dest)
    finally:
        shutil.rmtree(staging, ignore_errors=True)

    try:
        shutil.rmtree(source)
    except OSError as exc:
        logger.warning("Stored %s in the library but could not remove the original: %s", source, exc)


class Library:
    """A directory tree of bare repositories keyed by workspace-relative path."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def __repr__(self) -> str:
        return f"Library({str(self.path)!r})"

    def entry_path(self, key: str) -> Path:
        return self.path.joinpath(*normalize_key(key).split("/"))

    def exists(self, key: str) -> bool:
        try:
            return os.path.lexists(self.entry_path(key))
        except LibraryError:
            return False

    def store(self, workspace_root: Path, key: str) -> Path:
        """Convert ``<workspace_root>/<key>/.git`` to a bare repo and move it here.

        A pre-existing entry at ``key`` is replaced only once the new entry is
        in place. On any failure the source repository is left as it was
        (``core.bare`` reset) and ``LibraryError`` is raised.
        """
        key = normalize_key(key)
        source = Path(workspace_root).joinpath(*key.split("/")) / ".git"
        dest = self.entry_path(key)

        if not source.is_dir() or source.is_symlink():
            raise LibraryError(f"Repository .git directory not found: {source}")

        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise LibraryError(f"Failed to create library directory {dest.parent}: {exc}") from exc

        proc = commands.set_bare(source, True)
        if proc is None or proc.returncode != 0:
            raise LibraryError(commands.git_failure_message(proc, "Failed to configure repository as bare"))

        logger.debug("Storing %s in library at %s", source, dest)
        aside_dir: Path | None = None
        try:
            if os.path.lexists(dest):
                aside_dir = Path(tempfile.mkdtemp(prefix=REPLACE_PREFIX, dir=dest.parent))
                os.replace(dest, aside_dir / dest.name)
            _move_metadata(source, dest)
        except OSError as exc:
            commands.set_bare(source, False)
            if aside_dir is not None and os.path.lexists(aside_dir / dest.name):
                os.replace(aside_dir / dest.name, dest)
                shutil.rmtree(aside_dir, ignore_errors=True)
            raise LibraryError(f"Failed to move repository to library: {exc}") from exc

        if aside_dir is not None:
            logger.debug("Removing replaced library entry for %s", key)
            shutil.rmtree(aside_dir, ignore_errors=True)
        return dest

    def restore(self, workspace_root: Path, key: str) -> Path:
        """Materialize a working copy of entry ``key`` at ``<workspace_root>/<key>``.

        The bare entry is copied in as the new metadata directory, so remotes,
        branches, and tracking refs come back verbatim; then HEAD is checked
        out. The library entry itself is kept.
        """
        key = normalize_key(key)
        entry = self.entry_path(key)
        dest = Path(workspace_root).joinpath(*key.split("/"))

        if not entry.is_dir():
            raise LibraryError(f"Repository not found in library for path: {key}")
        if dest.exists() and (not dest.is_dir() or any(dest.iterdir())):
            raise LibraryError(f"Destination already exists: {dest}")

        created = not dest.exists()
        try:
            dest.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise LibraryError(f"Failed to create parent directory: {exc}") from exc

        git_dir = dest / ".git"
        try:
            shutil.copytree(entry, git_dir, symlinks=True)
            proc = commands.set_bare(git_dir, False)
            if proc is None or proc.returncode != 0:
                raise LibraryError(commands.git_failure_message(proc, "Failed to configure restored repository"))
            head = read_head(git_dir)
            if head is not None and head.commit is not None:
                proc = commands.checkout_head(dest)
                if proc is None or proc.returncode != 0:
                    raise LibraryError(commands.git_failure_message(proc, "Failed to check out restored repository"))
        except (OSError, LibraryError) as exc:
            if created:
                shutil.rmtree(dest, ignore_errors=True)
            else:
                shutil.rmtree(git_dir, ignore_errors=True)
            if isinstance(exc, LibraryError):
                raise
            raise LibraryError(f"Failed to restore repository from library: {exc}") from exc
        return dest

    def remove(self, key: str) -> None:
        """Delete entry ``key``; raises ``LibraryError`` if it is missing."""
        entry = self.entry_path(key)
        if not os.path.lexists(entry):
            raise LibraryError(f"Repository not found in library for path: {key}")
        try:
            _remove_path(entry)
        except OSError as exc:
            raise LibraryError(f"Failed to remove library entry {key}: {exc}") from exc

    def list(self) -> list[str]:
        """Return sorted keys of every bare repository in the library.

        A directory that is itself a repository is not descended into.
        """
        if not self.path.is_dir():
            return []

        keys: list[str] = []

        def walk(directory: Path) -> None:
            if directory != self.path and looks_like_git_dir(directory):
                keys.append(directory.relative_to(self.path).as_posix())
                return
            try:
                with os.scandir(directory) as entries:
                    children = [
                        Path(entry.path)
                        for entry in entries
                        if not entry.name.startswith(REPLACE_PREFIX) and entry.is_dir(follow_symlinks=False)
                    ]
            except OSError as exc:
                logger.warning("Skipping unreadable library directory %s: %s", directory, exc)
                return
            for child in children:
                walk(child)

        walk(self.path)
        keys.sort()
        logger.debug("Found %d repositories in library", len(keys))
        return keys

    def records(self) -> list[RepositoryRecord]:
        """Return a listing record (with size) for every library entry."""
        return [build_library_record(self.entry_path(key), key) for key in self.list()]


__all__ = ["Library", "normalize_key"]
