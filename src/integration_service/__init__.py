"""Integration service: event-driven webhook dispatch."""

__version__ = "0.1.0"
