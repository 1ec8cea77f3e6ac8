"""
Entity access helpers.

Each helper is a single pass-through call to the backend. Profile, match and
conversation mutations raise whatever the backend client raises; the session
check, matching and realtime subscriptions log a warning and fall back to a
safe default instead.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from voicematch.backend_client import (
    BackendClient,
    BackendNotInitializedError,
    NoopSubscription,
    Subscription,
    eq_filter,
)
from voicematch.config import get_settings
from voicematch.dependencies import get_backend_client
from voicematch.records import (
    CONVERSATIONS_TABLE,
    MATCHES_TABLE,
    PROFILES_TABLE,
    VOICE_PROFILES_TABLE,
    Conversation,
    Match,
    MatchStatus,
    PersonalityType,
    Profile,
    VoiceProfile,
)

logger = logging.getLogger(__name__)

FIND_MATCH_RPC = "find_match"
VOICE_PROFILE_CONTENT_TYPE = "audio/webm"


def _require(client: Optional[BackendClient]) -> BackendClient:
    backend = client or get_backend_client()
    if backend is None:
        raise BackendNotInitializedError()
    return backend


# Auth


async def get_current_user(*, client: Optional[BackendClient] = None) -> Optional[dict]:
    backend = _require(client)
    try:
        return await backend.get_user()
    except Exception as exc:
        logger.warning("Auth check failed: %s", exc)
        return None


# Profiles


async def get_profile(user_id: str, *, client: Optional[BackendClient] = None) -> Profile:
    backend = _require(client)
    row = await backend.select_one(PROFILES_TABLE, "id", user_id)
    return Profile.from_row(row)


async def update_profile(
    user_id: str, updates: dict, *, client: Optional[BackendClient] = None
) -> Profile:
    backend = _require(client)
    row = await backend.update_one(PROFILES_TABLE, "id", user_id, dict(updates))
    return Profile.from_row(row)


# Matching


async def find_match(
    user_id: str,
    personality_type: PersonalityType | str,
    *,
    client: Optional[BackendClient] = None,
) -> Any:
    """
    Ask the backend's ``find_match`` procedure for a partner.

    Returns whatever the procedure returns, or None if the call fails.
    """
    backend = _require(client)
    try:
        return await backend.rpc(
            FIND_MATCH_RPC,
            {"user_id": user_id, "personality": str(personality_type)},
        )
    except Exception as exc:
        logger.warning("Matching failed: %s", exc)
        return None


async def create_match(
    user1_id: str, user2_id: str, *, client: Optional[BackendClient] = None
) -> Match:
    backend = _require(client)
    row = await backend.insert_one(
        MATCHES_TABLE,
        {
            "user1_id": user1_id,
            "user2_id": user2_id,
            "status": MatchStatus.PENDING.value,
        },
    )
    return Match.from_row(row)


# Conversations


async def create_conversation(
    match_id: str, *, client: Optional[BackendClient] = None
) -> Conversation:
    backend = _require(client)
    row = await backend.insert_one(
        CONVERSATIONS_TABLE,
        {
            "match_id": match_id,
            "started_at": datetime.now(timezone.utc).isoformat(),
            "feedback_events": [],
        },
    )
    return Conversation.from_row(row)


async def update_conversation(
    conversation_id: str, updates: dict, *, client: Optional[BackendClient] = None
) -> Conversation:
    backend = _require(client)
    row = await backend.update_one(
        CONVERSATIONS_TABLE, "id", conversation_id, dict(updates)
    )
    return Conversation.from_row(row)


# Voice profiles


def voice_profile_path(user_id: str, timestamp_ms: Optional[int] = None) -> str:
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"voice-profiles/{user_id}/{timestamp_ms}.webm"


async def upload_voice_profile(
    user_id: str,
    audio: bytes,
    *,
    content_type: str = VOICE_PROFILE_CONTENT_TYPE,
    client: Optional[BackendClient] = None,
) -> VoiceProfile:
    """
    Upload a recording, then store its public URL as a voice profile.

    The two steps are not atomic: if the insert fails the uploaded object
    stays in the bucket.
    """
    backend = _require(client)
    bucket = get_settings().voice_profile_bucket
    path = voice_profile_path(user_id)
    try:
        await backend.upload(bucket, path, audio, content_type)
        audio_url = await backend.public_url(bucket, path)
        row = await backend.insert_one(
            VOICE_PROFILES_TABLE, {"user_id": user_id, "audio_url": audio_url}
        )
    except Exception as exc:
        logger.warning("Voice upload failed: %s", exc)
        raise
    return VoiceProfile.from_row(row)


# Realtime


async def subscribe_to_matches(
    user_id: str,
    callback: Callable[[Match], None],
    *,
    client: Optional[BackendClient] = None,
) -> Subscription:
    """Call ``callback`` for every new match involving ``user_id``."""
    backend = _require(client)
    try:
        return await backend.subscribe(
            "matches",
            event="INSERT",
            table=MATCHES_TABLE,
            filters=[eq_filter("user1_id", user_id), eq_filter("user2_id", user_id)],
            callback=lambda row: callback(Match.from_row(row)),
        )
    except Exception as exc:
        logger.warning("Real-time subscription failed: %s", exc)
        return NoopSubscription()


async def subscribe_to_conversations(
    match_id: str,
    callback: Callable[[Conversation], None],
    *,
    client: Optional[BackendClient] = None,
) -> Subscription:
    """Call ``callback`` whenever a conversation of ``match_id`` is updated."""
    backend = _require(client)
    try:
        return await backend.subscribe(
            "conversations",
            event="UPDATE",
            table=CONVERSATIONS_TABLE,
            filters=[eq_filter("match_id", match_id)],
            callback=lambda row: callback(Conversation.from_row(row)),
        )
    except Exception as exc:
        logger.warning("Real-time subscription failed: %s", exc)
        return NoopSubscription()
