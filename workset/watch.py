"""Poll-based workspace change detection.

A signature hashes stat metadata of every directory and file in the workspace,
skipping ``.git`` entries and the library. The watcher reports the workspace
stale once a changed signature has stayed unchanged for a debounce window, so
a burst of writes (a checkout, a build) yields one refresh.
"""

from __future__ import annotations

import hashlib
import logging
import os
import threading
import time
from collections.abc import Callable, Iterable
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.5
DEFAULT_POLL_INTERVAL_SECONDS = 0.25


def _update_digest(digest, token: str) -> None:
    """Append a token plus separator byte to a hash digest."""
    digest.update(token.encode("utf-8", errors="surrogateescape"))
    digest.update(b"\0")


def build_workspace_watch_signature(root: Path, skip: Iterable[Path] = ()) -> str:
    """Build a digest over the workspace tree's structure and file stats.

    ``.git`` entries (files or directories) are never read, so git's own
    bookkeeping does not count as a change. Directories in ``skip`` are pruned.
    """
    root = Path(root).resolve()
    skipped = {Path(path).resolve() for path in skip}
    digest = hashlib.blake2b(digest_size=20)
    _update_digest(digest, f"root:{root}")

    pending = [root]
    while pending:
        directory = pending.pop()
        _update_digest(digest, f"dir:{directory}")
        children: list[tuple[str, bool, int, int, int]] = []
        try:
            with os.scandir(directory) as entries:
                for child in entries:
                    if child.name == ".git":
                        continue
                    try:
                        is_dir = child.is_dir(follow_symlinks=False)
                        st = child.stat(follow_symlinks=False)
                    except OSError:
                        children.append((child.name, False, 0, 0, 0))
                        continue
                    children.append((child.name, is_dir, st.st_mtime_ns, st.st_size, st.st_mode))
        except OSError:
            _update_digest(digest, "children:error")
            continue

        children.sort(key=lambda item: item[0])
        for name, is_dir, mtime_ns, size, mode in children:
            child_path = directory / name
            if is_dir and child_path in skipped:
                continue
            # Directory mtimes only reflect entry changes, which the child list already covers.
            stamp = f"{size}:{mtime_ns}" if not is_dir else "-"
            _update_digest(digest, f"child:{name}:{1 if is_dir else 0}:{stamp}:{mode}")
            if is_dir:
                pending.append(child_path)

    return digest.hexdigest()


class WorkspaceWatcher:
    """Debounced stale-detection over a workspace, optionally on a daemon thread.

    ``poll`` performs one synchronous step and can be driven directly;
    ``start`` runs it every ``poll_interval`` seconds in the background.
    Consumers either pass ``on_stale`` or call ``consume_stale`` from their
    own loop.
    """

    def __init__(
        self,
        root: Path,
        skip: Iterable[Path] = (),
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
        on_stale: Callable[[], None] | None = None,
        signature: Callable[[], str] | None = None,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self.root = Path(root)
        self.skip = tuple(skip)
        self.debounce_seconds = debounce_seconds
        self.poll_interval = poll_interval
        self.on_stale = on_stale
        self._signature = signature or (lambda: build_workspace_watch_signature(self.root, self.skip))
        self._monotonic = monotonic
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._stale = False
        self._reported = self._signature()
        self._last_seen = self._reported
        self._changed_at: float | None = None

    def poll(self) -> bool:
        """Sample the signature once; return ``True`` when this step reports stale."""
        current = self._signature()
        now = self._monotonic()
        if current != self._last_seen:
            self._last_seen = current
            self._changed_at = now
            return False
        if self._changed_at is None or now - self._changed_at < self.debounce_seconds:
            return False

        self._changed_at = None
        if current == self._reported:
            return False
        self._reported = current
        with self._lock:
            self._stale = True
        logger.debug("Workspace %s changed", self.root)
        if self.on_stale is not None:
            self.on_stale()
        return True

    def consume_stale(self) -> bool:
        """Return whether a change was reported since the last call, and clear it."""
        with self._lock:
            stale = self._stale
            self._stale = False
        return stale

    def _run(self) -> None:
        while not self._stop.wait(self.poll_interval):
            try:
                self.poll()
            except OSError as exc:
                logger.warning("Workspace watch poll failed: %s", exc)

    def start(self) -> None:
        if self._thread is not None:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="workset-watch", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=max(1.0, self.poll_interval * 4))
            self._thread = None


__all__ = [
    "DEFAULT_DEBOUNCE_SECONDS",
    "WorkspaceWatcher",
    "build_workspace_watch_signature",
]
