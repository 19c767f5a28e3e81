"""Filesystem listing primitives."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class EnumerationOptions(BaseModel):
    """Controls how a directory is walked when listing entries."""

    model_config = ConfigDict(frozen=True)

    recurse_subdirectories: bool = False
    match_pattern: str = "*"
    skip_hidden: bool = True
    ignore_inaccessible: bool = True
    max_recursion_depth: int | None = Field(default=None, ge=0)


class DirectoryEntry(BaseModel):
    name: str
    full_name: str
    modified_at: datetime


class FileEntry(BaseModel):
    name: str
    full_name: str
    length: int
    modified_at: datetime
