"""Structural checks over a conversation's message snapshot.

The tree builder degrades silently on bad data (first root wins, orphans
are dropped). find_anomalies reports what was degraded so callers can show
or log it; it never raises.
"""

from collections.abc import Sequence
from typing import Literal

from pydantic import BaseModel

from arbor.models import Message
from arbor.tree.builder import group_by_parent

AnomalyKind = Literal[
    "no_root",
    "multiple_roots",
    "dangling_parent",
    "cross_conversation_parent",
    "depth_mismatch",
    "unreachable",
]


class TreeAnomaly(BaseModel):
    kind: AnomalyKind
    message_id: str | None = None
    detail: str


def find_anomalies(messages: Sequence[Message]) -> list[TreeAnomaly]:
    """Report every way the snapshot deviates from a single well-formed tree."""
    if not messages:
        return []

    anomalies: list[TreeAnomaly] = []
    by_id = {m.id: m for m in messages}
    children_of = group_by_parent(messages)
    roots = children_of.get(None, [])

    if not roots:
        anomalies.append(TreeAnomaly(kind="no_root", detail="No message without a parent"))
    for extra in roots[1:]:
        anomalies.append(TreeAnomaly(
            kind="multiple_roots",
            message_id=extra.id,
            detail=f"Second root dropped in favour of {roots[0].id}",
        ))

    for message in messages:
        parent_id = message.parent_message_id
        if parent_id is None:
            if message.depth != 0:
                anomalies.append(TreeAnomaly(
                    kind="depth_mismatch",
                    message_id=message.id,
                    detail=f"Root has depth {message.depth}, expected 0",
                ))
            continue
        parent = by_id.get(parent_id)
        if parent is None:
            anomalies.append(TreeAnomaly(
                kind="dangling_parent",
                message_id=message.id,
                detail=f"Parent {parent_id} is not in the conversation",
            ))
            continue
        if parent.conversation_id != message.conversation_id:
            anomalies.append(TreeAnomaly(
                kind="cross_conversation_parent",
                message_id=message.id,
                detail=f"Parent {parent_id} belongs to {parent.conversation_id}",
            ))
        if message.depth != parent.depth + 1:
            anomalies.append(TreeAnomaly(
                kind="depth_mismatch",
                message_id=message.id,
                detail=f"Depth {message.depth}, parent depth {parent.depth}",
            ))

    reachable: set[str] = set()
    if roots:
        stack = [roots[0].id]
        while stack:
            current = stack.pop()
            if current in reachable:
                continue
            reachable.add(current)
            stack.extend(child.id for child in children_of.get(current, ()))

    for message in messages:
        if message.id not in reachable:
            anomalies.append(TreeAnomaly(
                kind="unreachable",
                message_id=message.id,
                detail="Not reachable from the root",
            ))

    return anomalies
