"""
Pydantic schemas for the HTTP surface.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from voicematch.records import PersonalityType


class SessionResponse(BaseModel):
    user: Optional[dict] = None
    loading: bool


class ProfileResponse(BaseModel):
    id: str
    email: str
    username: Optional[str] = None
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    personality_type: str
    bio: Optional[str] = None
    created_at: str
    updated_at: str


class ProfileUpdateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    email: Optional[str] = None
    username: Optional[str] = None
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    personality_type: Optional[PersonalityType] = None
    bio: Optional[str] = None


class FindMatchRequest(BaseModel):
    user_id: str
    personality_type: PersonalityType


class FindMatchResponse(BaseModel):
    match: Optional[Any] = None


class CreateMatchRequest(BaseModel):
    user1_id: str
    user2_id: str


class MatchResponse(BaseModel):
    id: str
    user1_id: str
    user2_id: str
    status: str
    created_at: str
    ended_at: Optional[str] = None


class CreateConversationRequest(BaseModel):
    match_id: str


class ConversationUpdateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    ended_at: Optional[str] = None
    duration: Optional[float] = Field(default=None, ge=0)
    avg_drift_level: Optional[float] = None
    feedback_events: Optional[list] = None


class ConversationResponse(BaseModel):
    id: str
    match_id: str
    started_at: str
    ended_at: Optional[str] = None
    duration: Optional[float] = None
    avg_drift_level: Optional[float] = None
    feedback_events: list = Field(default_factory=list)


class VoiceProfileResponse(BaseModel):
    id: str
    user_id: str
    audio_url: str
    analysis_data: Optional[Any] = None
    created_at: str
