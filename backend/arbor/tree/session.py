"""TreeSession: one built tree paired with its path cache.

A session is the only owner of a tree and its cache. rebuild() replaces
both in a single synchronous step, so no caller can read a cached path from
an old tree against a new one.
"""

from collections.abc import Sequence

from arbor.models import Message
from arbor.tree.builder import TreeNode, build_tree, extra_root_ids
from arbor.tree.invariants import TreeAnomaly, find_anomalies
from arbor.tree.navigator import (
    PathCache,
    find_node_by_id,
    get_descendants,
    get_leaf_nodes,
    get_path_to_node,
    iter_preorder,
)


class TreeSession:
    """The current tree of one conversation, with memoized navigation."""

    def __init__(self) -> None:
        self._root: TreeNode | None = None
        self._cache = PathCache()
        self._nodes: dict[str, TreeNode] = {}
        self._parent_of: dict[str, str | None] = {}
        self._dropped_root_ids: list[str] = []
        self._anomalies: list[TreeAnomaly] = []

    @classmethod
    def from_messages(cls, messages: Sequence[Message]) -> "TreeSession":
        session = cls()
        session.rebuild(messages)
        return session

    def rebuild(self, messages: Sequence[Message]) -> TreeNode | None:
        """Build a new tree from a message snapshot and reset the path cache."""
        root = build_tree(messages)
        nodes: dict[str, TreeNode] = {}
        parent_of: dict[str, str | None] = {}
        if root is not None:
            for node in iter_preorder(root):
                nodes[node.id] = node
                for child in node.children:
                    parent_of[child.id] = node.id
            parent_of[root.id] = None

        self._root = root
        self._nodes = nodes
        self._parent_of = parent_of
        self._dropped_root_ids = extra_root_ids(messages)
        self._anomalies = find_anomalies(messages)
        self._cache = PathCache()
        return root

    @property
    def root(self) -> TreeNode | None:
        return self._root

    @property
    def dropped_root_ids(self) -> list[str]:
        """Null-parent messages left out of the tree because another root came first."""
        return list(self._dropped_root_ids)

    @property
    def anomalies(self) -> list[TreeAnomaly]:
        return list(self._anomalies)

    @property
    def node_count(self) -> int:
        return len(self._nodes)

    @property
    def cached_path_count(self) -> int:
        return len(self._cache)

    def clear_path_cache(self) -> None:
        self._cache.clear()

    def find(self, node_id: str) -> TreeNode | None:
        if self._root is None:
            return None
        return find_node_by_id(self._root, node_id)

    def path_to(self, node_id: str) -> list[TreeNode]:
        if self._root is None:
            return []
        return get_path_to_node(self._root, node_id, self._cache)

    def leaves(self) -> list[TreeNode]:
        if self._root is None:
            return []
        return get_leaf_nodes(self._root)

    def descendants(self, node_id: str) -> list[TreeNode]:
        node = self._nodes.get(node_id)
        if node is None:
            return []
        return get_descendants(node)

    def parent_id(self, node_id: str) -> str | None:
        return self._parent_of.get(node_id)

    def siblings(self, node_id: str) -> list[TreeNode]:
        """Other replies to the same parent, in stored order. [] for the root."""
        parent = self._nodes.get(self.parent_id(node_id) or "")
        if parent is None:
            return []
        return [child for child in parent.children if child.id != node_id]

    def sibling_position(self, node_id: str) -> tuple[int, int]:
        """(index among the parent's replies, number of replies). (0, 1) for the root."""
        parent = self._nodes.get(self.parent_id(node_id) or "")
        if parent is None:
            return 0, 1
        for index, child in enumerate(parent.children):
            if child.id == node_id:
                return index, len(parent.children)
        return 0, 1

    def update_content(self, node_id: str, content: str) -> bool:
        """Patch a node's message content in place. Structure and cache are untouched."""
        node = self._nodes.get(node_id)
        if node is None:
            return False
        node.message.content = content
        return True
