"""Route modules."""

from . import events, files

__all__ = ["events", "files"]
