"""Event bus exports."""

from integration_service.events.bus import EventBus, EventHandler

__all__ = ["EventBus", "EventHandler"]
