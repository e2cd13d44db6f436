"""Interactive browser state, independent of any terminal.

Holds a workspace section and a library section, each with an unfiltered and
a query-filtered forest plus a selected row. Selection moves across sections:
stepping past the last workspace row lands on the first library row and
vice versa, wrapping around.

The ``browse`` command in :mod:`workset.cli` prints both sections from this
state; an interactive front end drives the same object through its
navigation methods.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path

from .records import OperationStatus, RepositoryRecord
from .tree_model import (
    FlatRow,
    RepoForest,
    build_library_tree,
    build_tree,
    collect_repo_paths,
    count_repos,
    filter_records,
    flatten,
    toggle,
    update_operation_status,
)


class Section(Enum):
    WORKSPACE = "workspace"
    LIBRARY = "library"


@dataclass
class SectionState:
    forest: RepoForest
    selected: int | None = None
    scroll: int = 0


class BrowserState:
    """Selection, filtering, and status feedback for the two-section browser."""

    def __init__(
        self,
        workspace_records: list[RepositoryRecord],
        library_records: list[RepositoryRecord],
    ) -> None:
        self.query = ""
        self.active_section = Section.WORKSPACE
        self._load(workspace_records, library_records)
        self.sections = {
            Section.WORKSPACE: SectionState(copy.deepcopy(self.workspace_tree)),
            Section.LIBRARY: SectionState(copy.deepcopy(self.library_tree)),
        }
        self._select_first()

    def _load(self, workspace_records: list[RepositoryRecord], library_records: list[RepositoryRecord]) -> None:
        self.workspace_records = list(workspace_records)
        self.library_records = list(library_records)
        self.workspace_tree = build_tree(self.workspace_records)
        self.library_tree = build_library_tree(self.library_records, self.workspace_records)

    # Rows

    def rows(self, section: Section | None = None) -> list[FlatRow]:
        return flatten(self.sections[section or self.active_section].forest)

    def repo_count(self, section: Section) -> int:
        return count_repos(self.sections[section].forest)

    def selected_row(self) -> FlatRow | None:
        state = self.sections[self.active_section]
        if state.selected is None:
            return None
        rows = self.rows()
        if 0 <= state.selected < len(rows):
            return rows[state.selected]
        return None

    def selected_repo_paths(self) -> list[Path]:
        """Return the selected repository, or every repository under a selected directory."""
        row = self.selected_row()
        if row is None:
            return []
        return collect_repo_paths(self.sections[self.active_section].forest, row.node_id)

    # Filtering

    def _select_first(self) -> None:
        workspace = self.sections[Section.WORKSPACE]
        library = self.sections[Section.LIBRARY]
        workspace.scroll = library.scroll = 0
        if self.rows(Section.WORKSPACE):
            workspace.selected, library.selected = 0, None
            self.active_section = Section.WORKSPACE
        elif self.rows(Section.LIBRARY):
            workspace.selected, library.selected = None, 0
            self.active_section = Section.LIBRARY
        else:
            workspace.selected = library.selected = None
            self.active_section = Section.WORKSPACE

    def _apply_filter(self) -> None:
        if not self.query.strip():
            workspace_forest = copy.deepcopy(self.workspace_tree)
            library_forest = copy.deepcopy(self.library_tree)
        else:
            workspace_forest = build_tree(filter_records(self.workspace_records, self.query))
            library_forest = build_library_tree(
                filter_records(self.library_records, self.query),
                self.workspace_records,
            )
        self.sections[Section.WORKSPACE].forest = workspace_forest
        self.sections[Section.LIBRARY].forest = library_forest

    def set_query(self, query: str) -> None:
        """Refilter both sections and reset the selection to the first row."""
        self.query = query
        self._apply_filter()
        self._select_first()

    def replace_records(
        self,
        workspace_records: list[RepositoryRecord],
        library_records: list[RepositoryRecord],
    ) -> None:
        """Swap in freshly discovered records, keeping the selection when it still exists."""
        previous = self.selected_row()
        previous_section = self.active_section
        self._load(workspace_records, library_records)
        self._apply_filter()
        self._select_first()
        if previous is None:
            return
        for section in (previous_section, *[s for s in Section if s is not previous_section]):
            for index, row in enumerate(self.rows(section)):
                if row.full_path == previous.full_path:
                    self.sections[Section.WORKSPACE].selected = None
                    self.sections[Section.LIBRARY].selected = None
                    self.sections[section].selected = index
                    self.active_section = section
                    return

    # Selection

    def _other(self, section: Section) -> Section:
        return Section.LIBRARY if section is Section.WORKSPACE else Section.WORKSPACE

    def _move(self, step: int) -> None:
        section = self.active_section
        state = self.sections[section]
        rows = self.rows(section)
        if not rows:
            return
        if state.selected is None:
            state.selected = 0
            return

        target = state.selected + step
        if 0 <= target < len(rows):
            state.selected = target
            return

        other = self._other(section)
        other_rows = self.rows(other)
        if other_rows:
            state.selected = None
            self.sections[other].selected = 0 if step > 0 else len(other_rows) - 1
            self.active_section = other
            return
        state.selected = 0 if step > 0 else len(rows) - 1

    def select_next(self) -> None:
        self._move(1)

    def select_previous(self) -> None:
        self._move(-1)

    def toggle_selected(self) -> bool:
        row = self.selected_row()
        if row is None:
            return False
        return toggle(self.sections[self.active_section].forest, row.index_path)

    def visible_window(self, height: int) -> tuple[int, int]:
        """Return the ``[start, end)`` row range of the active section to draw.

        The scroll offset only moves when the selection would leave the window.
        """
        state = self.sections[self.active_section]
        total = len(self.rows())
        height = max(1, height)
        if state.selected is not None:
            if state.selected < state.scroll:
                state.scroll = state.selected
            elif state.selected >= state.scroll + height:
                state.scroll = state.selected - height + 1
        state.scroll = max(0, min(state.scroll, max(0, total - height)))
        return state.scroll, min(total, state.scroll + height)

    # Operation feedback

    def mark_status(self, display_name: str, status: OperationStatus) -> None:
        """Record a drop/restore status on every tree and record list naming the repo."""
        for forest in (
            self.workspace_tree,
            self.library_tree,
            self.sections[Section.WORKSPACE].forest,
            self.sections[Section.LIBRARY].forest,
        ):
            update_operation_status(forest, display_name, status)
        self.workspace_records = [
            replace(record, operation_status=status) if record.display_name == display_name else record
            for record in self.workspace_records
        ]
        self.library_records = [
            replace(record, operation_status=status) if record.display_name == display_name else record
            for record in self.library_records
        ]


__all__ = ["BrowserState", "Section", "SectionState"]
