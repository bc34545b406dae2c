"""Conversation-tree engine: build, navigate, and cache paths over message trees."""

from arbor.tree.builder import TreeNode, build_tree, extra_root_ids
from arbor.tree.invariants import TreeAnomaly, find_anomalies
from arbor.tree.navigator import (
    PathCache,
    find_node_by_id,
    get_descendants,
    get_leaf_nodes,
    get_path_to_node,
)
from arbor.tree.session import TreeSession

__all__ = [
    "PathCache",
    "TreeAnomaly",
    "TreeNode",
    "TreeSession",
    "build_tree",
    "extra_root_ids",
    "find_anomalies",
    "find_node_by_id",
    "get_descendants",
    "get_leaf_nodes",
    "get_path_to_node",
]
