"""Chat message records and correction suggestions."""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime


def utc_now() -> datetime:
    return datetime.now(UTC)


def new_message_id() -> str:
    return uuid.uuid4().hex


class MessageKind(enum.Enum):
    """Who a bubble belongs to."""

    USER = "user"
    RECIPIENT = "recipient"


@dataclass
class Message:
    """A single bubble in the conversation."""

    text: str
    kind: MessageKind = MessageKind.USER
    id: str = field(default_factory=new_message_id)
    timestamp: datetime = field(default_factory=utc_now)
    completed_loading: bool = False

    @property
    def is_user(self) -> bool:
        return self.kind is MessageKind.USER

    def time_string(self) -> str:
        """Short local time, e.g. ``3:07 PM``."""
        local = self.timestamp.astimezone()
        return local.strftime("%I:%M %p").lstrip("0")


@dataclass(frozen=True)
class AnimatingBubble:
    """A sent message still travelling from the compose field to its slot."""

    id: str
    message: Message


@dataclass(frozen=True)
class CorrectionSuggestion:
    """Plain result of a correction check.

    ``message`` is the complete corrected sentence when ``is_correction`` is
    True, otherwise the previous message unchanged.
    """

    message: str
    is_correction: bool

    @classmethod
    def none_for(cls, previous: str) -> CorrectionSuggestion:
        return cls(message=previous, is_correction=False)
