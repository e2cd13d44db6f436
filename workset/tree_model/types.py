"""Arena-backed repository forest datatypes."""

from __future__ import annotations

from dataclasses import dataclass, field

from ..records import RepositoryRecord


@dataclass
class TreeNode:
    """One path segment; carries ``repo_info`` when a repository lives here."""

    name: str
    repo_info: RepositoryRecord | None = None
    children: list[int] = field(default_factory=list)
    parent: int | None = None
    expanded: bool = True

    @property
    def is_repo(self) -> bool:
        return self.repo_info is not None

    @property
    def has_children(self) -> bool:
        return bool(self.children)


@dataclass
class RepoForest:
    """All nodes in one list; ``children``/``parent`` hold indices into it."""

    nodes: list[TreeNode] = field(default_factory=list)
    roots: list[int] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.nodes)

    def child_ids(self, parent: int | None) -> list[int]:
        return self.roots if parent is None else self.nodes[parent].children

    def find_child(self, parent: int | None, name: str) -> int | None:
        for node_id in self.child_ids(parent):
            if self.nodes[node_id].name == name:
                return node_id
        return None

    def add_node(self, name: str, parent: int | None, expanded: bool = True) -> int:
        node_id = len(self.nodes)
        self.nodes.append(TreeNode(name=name, parent=parent, expanded=expanded))
        self.child_ids(parent).append(node_id)
        return node_id


@dataclass(frozen=True)
class FlatRow:
    """One visible row produced by flattening a forest."""

    node_id: int
    node: TreeNode
    depth: int
    index_path: tuple[int, ...]
    full_path: str
