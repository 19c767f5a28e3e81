"""Core service primitives."""
