"""Append-only event store backed by SQLite."""

import json

from arbor.db.connection import Database
from arbor.models import EventEnvelope


class EventStore:
    """Append-only event log. The write side of the CQRS pattern."""

    def __init__(self, db: Database) -> None:
        self._db = db

    async def append(self, envelope: EventEnvelope) -> int:
        """Append an event and return the assigned sequence_num.

        Raises IntegrityError if event_id is not unique.
        """
        cursor = await self._db.execute(
            """
            INSERT INTO events
                (event_id, conversation_id, timestamp, device_id, event_type, payload)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                envelope.event_id,
                envelope.conversation_id,
                envelope.timestamp.isoformat(),
                envelope.device_id,
                envelope.event_type,
                json.dumps(envelope.payload),
            ),
        )
        assert cursor.lastrowid is not None
        return cursor.lastrowid
