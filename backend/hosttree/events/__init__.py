"""Event sourcing: append-only event store and state projection."""

from hosttree.events.projector import StateProjector
from hosttree.events.store import EventStore

__all__ = ["EventStore", "StateProjector"]
