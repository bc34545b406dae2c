"""Tree reconstruction: flat parent-linked messages to a rooted TreeNode graph.

Every build produces a fresh, disconnected set of nodes; trees are never
merged with earlier builds. Materialization uses an explicit stack, so tree
depth is not bounded by the interpreter's recursion limit.
"""

import logging
from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass, field

from arbor.models import Message

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class TreeNode:
    """A message plus the child nodes it exclusively owns.

    There is no parent pointer. Parent lookups go through the id map kept
    by TreeSession.
    """

    message: Message
    children: list["TreeNode"] = field(default_factory=list)

    @property
    def id(self) -> str:
        return self.message.id

    @property
    def is_leaf(self) -> bool:
        return not self.children


def group_by_parent(messages: Sequence[Message]) -> dict[str | None, list[Message]]:
    """Map parent id (None for roots) to its direct children, in input order."""
    children_of: dict[str | None, list[Message]] = defaultdict(list)
    for message in messages:
        children_of[message.parent_message_id].append(message)
    return children_of


def extra_root_ids(messages: Sequence[Message]) -> list[str]:
    """Ids of null-parent messages after the first. build_tree drops these."""
    roots = [m.id for m in messages if m.parent_message_id is None]
    return roots[1:]


def build_tree(messages: Sequence[Message]) -> TreeNode | None:
    """Build the conversation tree from an unordered flat message list.

    Returns None when there is no message without a parent. When several
    messages lack a parent, the first in input order becomes the root and
    the others (with their subtrees) are left out of the tree.
    """
    children_of = group_by_parent(messages)
    roots = children_of.get(None)
    if not roots:
        return None

    if len(roots) > 1:
        logger.warning(
            "Conversation has %d root messages; keeping %s, dropping %s",
            len(roots),
            roots[0].id,
            [m.id for m in roots[1:]],
        )

    root = TreeNode(roots[0])
    visited = {root.id}
    stack = [root]
    while stack:
        node = stack.pop()
        for child_message in children_of.get(node.id, ()):
            # Duplicate ids would otherwise re-enter a subtree forever
            if child_message.id in visited:
                continue
            visited.add(child_message.id)
            child = TreeNode(child_message)
            node.children.append(child)
            stack.append(child)
    return root
