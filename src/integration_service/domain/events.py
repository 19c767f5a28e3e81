"""Domain events published by the host application."""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, IPvAnyAddress, field_validator


class EventType(str, Enum):
    """Known event type names. ``ANY`` is only meaningful as a webhook matcher."""

    ANY = "Any"
    NOOP = "Noop"
    DOWNLOAD_FILE_COMPLETE = "DownloadFileComplete"
    DOWNLOAD_DIRECTORY_COMPLETE = "DownloadDirectoryComplete"
    UPLOAD_FILE_COMPLETE = "UploadFileComplete"
    PRIVATE_MESSAGE_RECEIVED = "PrivateMessageReceived"
    ROOM_MESSAGE_RECEIVED = "RoomMessageReceived"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Event(BaseModel):
    """Immutable event record.

    ``type`` is an open set: any non-empty name is accepted, the members of
    :class:`EventType` are just the ones the host application emits today.
    Payload fields not declared on a subclass are kept as extras.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    type: str
    id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(default_factory=_utcnow)
    version: int = 0

    @field_validator("type", mode="before")
    @classmethod
    def _type_name(cls, value: Any) -> Any:
        if isinstance(value, EventType):
            return value.value
        if isinstance(value, str):
            value = value.strip()
            if not value:
                raise ValueError("event type must not be empty")
        return value


class Transfer(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    username: str
    direction: str
    filename: str
    size: int
    state: str
    bytes_transferred: int = 0
    average_speed: float = 0.0
    ip_address: IPvAnyAddress | None = None
    port: int | None = None
    started_at: datetime | None = None
    ended_at: datetime | None = None
    exception: str | None = None


class PrivateMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    username: str
    message: str
    timestamp: datetime
    is_acknowledged: bool = False
    was_replayed: bool = False


class RoomMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    room_name: str
    username: str
    message: str
    timestamp: datetime


class NoopEvent(Event):
    type: str = EventType.NOOP.value


class DownloadFileCompleteEvent(Event):
    type: str = EventType.DOWNLOAD_FILE_COMPLETE.value
    local_filename: str
    remote_filename: str
    transfer: Transfer


class DownloadDirectoryCompleteEvent(Event):
    type: str = EventType.DOWNLOAD_DIRECTORY_COMPLETE.value
    local_directory_name: str
    remote_directory_name: str
    username: str


class UploadFileCompleteEvent(Event):
    type: str = EventType.UPLOAD_FILE_COMPLETE.value
    local_filename: str
    remote_filename: str
    transfer: Transfer


class PrivateMessageReceivedEvent(Event):
    type: str = EventType.PRIVATE_MESSAGE_RECEIVED.value
    message: PrivateMessage


class RoomMessageReceivedEvent(Event):
    type: str = EventType.ROOM_MESSAGE_RECEIVED.value
    message: RoomMessage
