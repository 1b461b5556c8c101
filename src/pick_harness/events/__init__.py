"""Chat progress events."""

from pick_harness.events.bus import WILDCARD, EventBus

__all__ = ["EventBus", "WILDCARD"]
