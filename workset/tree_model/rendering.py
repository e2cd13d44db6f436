"""Row formatting for repository forests."""

from __future__ import annotations

import time

from ..records import OperationStatus, RepoStatus
from .types import FlatRow

KB = 1024
MB = KB * 1024
GB = MB * 1024

MINUTE = 60
HOUR = 60 * MINUTE
DAY = 24 * HOUR
MONTH = 30 * DAY
YEAR = 365 * DAY

RESET = "\033[0m"
DIR_COLOR = "\033[1;34m"
DIM_COLOR = "\033[2m"
OK_COLOR = "\033[38;5;42m"
WARN_COLOR = "\033[38;5;214m"
ERROR_COLOR = "\033[38;5;196m"

STATUS_BADGES = {
    RepoStatus.CLEAN: ("✓", OK_COLOR),
    RepoStatus.DIRTY: ("⚠", WARN_COLOR),
    RepoStatus.UNPUSHED: ("⚠", WARN_COLOR),
    RepoStatus.NO_COMMITS: ("⚠", WARN_COLOR),
}

OPERATION_BADGES = {
    OperationStatus.IN_PROGRESS: ("…", WARN_COLOR),
    OperationStatus.SUCCEEDED: ("✓", OK_COLOR),
    OperationStatus.FAILED: ("✗", ERROR_COLOR),
}


def format_time_ago(timestamp: float, now: float | None = None) -> str:
    """Render ``timestamp`` as a rounded relative age such as ``3d ago``."""
    current = time.time() if now is None else now
    elapsed = current - timestamp
    if elapsed < 0:
        return "just now"
    seconds = int(elapsed)

    if seconds < MINUTE:
        return f"{seconds}s ago"
    if seconds < HOUR:
        return f"{(seconds + MINUTE // 2) // MINUTE}m ago"
    if seconds < DAY:
        return f"{(seconds + HOUR // 2) // HOUR}h ago"
    if seconds < MONTH:
        return f"{(seconds + DAY // 2) // DAY}d ago"
    if seconds < YEAR:
        return f"{(seconds + MONTH // 2) // MONTH}mo ago"
    return f"{(seconds + YEAR // 2) // YEAR}y ago"


def format_size(size_bytes: int) -> str:
    if size_bytes >= GB:
        return f"{size_bytes / GB:.1f} GB"
    if size_bytes >= MB:
        return f"{size_bytes / MB:.1f} MB"
    if size_bytes >= KB:
        return f"{size_bytes / KB:.1f} KB"
    return f"{size_bytes} B"


def _paint(text: str, color: str, use_color: bool) -> str:
    return f"{color}{text}{RESET}" if use_color else text


def format_status_badge(status: RepoStatus, use_color: bool = False) -> str:
    symbol, color = STATUS_BADGES[status]
    return _paint(f"{symbol} {status.label}", color, use_color)


def format_row(
    row: FlatRow,
    now: float | None = None,
    show_status: bool = True,
    show_size: bool = True,
    use_color: bool = False,
) -> str:
    """Render one flattened row.

    Nodes with children get a ``▾``/``▸`` marker; leaves are padded so names
    line up. Repository rows append status, relative age, size (when known)
    and an operation marker while a drop/restore is running or just finished.
    """
    node = row.node
    indent = "  " * row.depth
    if node.has_children:
        marker = "▾ " if node.expanded else "▸ "
    else:
        marker = "  "

    record = node.repo_info
    if record is None:
        return f"{indent}{marker}{_paint(node.name + '/', DIR_COLOR, use_color)}"

    parts = [f"{indent}{marker}{node.name}"]
    if show_status:
        parts.append(format_status_badge(record.status, use_color))
    if record.is_submodule and not record.submodule_initialized:
        parts.append(_paint("(not initialized)", DIM_COLOR, use_color))
    if record.modification_time is not None:
        parts.append(_paint(format_time_ago(record.modification_time, now), DIM_COLOR, use_color))
    if show_size and record.size_bytes is not None:
        parts.append(_paint(format_size(record.size_bytes), DIM_COLOR, use_color))
    badge = OPERATION_BADGES.get(record.operation_status)
    if badge is not None:
        parts.append(_paint(badge[0], badge[1], use_color))
    return "  ".join(parts)
