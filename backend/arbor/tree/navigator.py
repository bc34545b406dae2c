"""Read-only queries over a built conversation tree.

None of these raise: a miss is None or an empty list. All traversals are
depth-first pre-order and visit children in their stored order.
"""

from collections.abc import Iterator

from arbor.tree.builder import TreeNode


class PathCache:
    """Memoized root-to-node paths, valid for exactly one tree instance."""

    def __init__(self) -> None:
        self._paths: dict[str, tuple[TreeNode, ...]] = {}

    def get(self, target_id: str) -> list[TreeNode] | None:
        path = self._paths.get(target_id)
        if path is None:
            return None
        return list(path)

    def put(self, target_id: str, path: list[TreeNode]) -> None:
        self._paths[target_id] = tuple(path)

    def clear(self) -> None:
        self._paths.clear()

    def __contains__(self, target_id: object) -> bool:
        return target_id in self._paths

    def __len__(self) -> int:
        return len(self._paths)


def iter_preorder(tree: TreeNode) -> Iterator[TreeNode]:
    """Yield every node under (and including) tree, depth-first pre-order."""
    stack = [tree]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def find_node_by_id(tree: TreeNode, node_id: str) -> TreeNode | None:
    for node in iter_preorder(tree):
        if node.id == node_id:
            return node
    return None


def get_path_to_node(
    tree: TreeNode, target_id: str, cache: PathCache | None = None
) -> list[TreeNode]:
    """Nodes from the root to target_id, inclusive.

    Empty only if target_id is not in the tree; the root's own path is
    [root]. With a cache, hits and misses are both memoized by target id.
    """
    if cache is not None:
        cached = cache.get(target_id)
        if cached is not None:
            return cached

    path = _search_path(tree, target_id)
    if cache is not None:
        cache.put(target_id, path)
    return path


def _search_path(tree: TreeNode, target_id: str) -> list[TreeNode]:
    # Each stack entry remembers its depth so the path can be cut back to
    # the right length when the search backtracks into a sibling branch.
    path: list[TreeNode] = []
    stack: list[tuple[TreeNode, int]] = [(tree, 0)]
    while stack:
        node, level = stack.pop()
        del path[level:]
        path.append(node)
        if node.id == target_id:
            return path
        stack.extend((child, level + 1) for child in reversed(node.children))
    return []


def get_leaf_nodes(tree: TreeNode) -> list[TreeNode]:
    """Branch heads: nodes without replies, in left-to-right tree order."""
    return [node for node in iter_preorder(tree) if node.is_leaf]


def get_descendants(node: TreeNode) -> list[TreeNode]:
    """Everything strictly below node, pre-order."""
    descendants = iter_preorder(node)
    next(descendants)
    return list(descendants)
