"""
Records mirrored from the backend schema.

The backend owns validation and integrity; these are passive containers for
the rows it returns.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from enum import StrEnum
from typing import Any, Optional

PROFILES_TABLE = "profiles"
MATCHES_TABLE = "matches"
CONVERSATIONS_TABLE = "conversations"
VOICE_PROFILES_TABLE = "voice_profiles"


class PersonalityType(StrEnum):
    """How a user chooses to present themselves."""

    REAL_ME = "real-me"
    MY_MASK = "my-mask"
    CRAZY_SELF = "crazy-self"


class MatchStatus(StrEnum):
    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


def _coerce(enum_cls, value):
    # Keep values the backend knows about but we do not.
    try:
        return enum_cls(value)
    except ValueError:
        return value


def _pick(cls, row: dict) -> dict:
    names = {f.name for f in fields(cls)}
    return {key: value for key, value in row.items() if key in names}


def _plain(value: Any) -> Any:
    if isinstance(value, StrEnum):
        return value.value
    return value


class _Record:
    @classmethod
    def from_row(cls, row: dict):
        return cls(**_pick(cls, row))

    def as_dict(self) -> dict:
        return {key: _plain(value) for key, value in asdict(self).items()}


@dataclass
class Profile(_Record):
    id: str
    email: str
    personality_type: PersonalityType | str
    created_at: str
    updated_at: str
    username: Optional[str] = None
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    bio: Optional[str] = None

    def __post_init__(self):
        self.personality_type = _coerce(PersonalityType, self.personality_type)


@dataclass
class Match(_Record):
    id: str
    user1_id: str
    user2_id: str
    status: MatchStatus | str
    created_at: str
    ended_at: Optional[str] = None

    def __post_init__(self):
        self.status = _coerce(MatchStatus, self.status)


@dataclass
class Conversation(_Record):
    id: str
    match_id: str
    started_at: str
    ended_at: Optional[str] = None
    duration: Optional[float] = None
    avg_drift_level: Optional[float] = None
    feedback_events: list = field(default_factory=list)

    def __post_init__(self):
        if self.feedback_events is None:
            self.feedback_events = []


@dataclass
class VoiceProfile(_Record):
    id: str
    user_id: str
    audio_url: str
    created_at: str
    analysis_data: Optional[Any] = None
