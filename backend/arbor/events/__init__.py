"""Event sourcing: append-only event store and state projection."""

from arbor.events.projector import StateProjector
from arbor.events.store import EventStore

__all__ = ["EventStore", "StateProjector"]
