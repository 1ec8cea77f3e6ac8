"""
HTTP routes: the page shell and a JSON binding for each helper.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import HTMLResponse

from voicematch import helpers
from voicematch.backend_client import BackendClient
from voicematch.dependencies import get_backend_client
from voicematch.schemas import (
    ConversationResponse,
    ConversationUpdateRequest,
    CreateConversationRequest,
    CreateMatchRequest,
    FindMatchRequest,
    FindMatchResponse,
    MatchResponse,
    ProfileResponse,
    ProfileUpdateRequest,
    SessionResponse,
    VoiceProfileResponse,
)
from voicematch.shell import SessionShell

logger = logging.getLogger(__name__)

pages = APIRouter()
router = APIRouter()

HOME_CONTENT = (
    "<main><h1>Voice Match</h1>"
    "<p>Pick who you want to be today and meet someone by voice.</p></main>"
)


def get_shell(request: Request) -> SessionShell:
    return request.app.state.shell


@pages.get("/", response_class=HTMLResponse)
def home(shell: SessionShell = Depends(get_shell)):
    return HTMLResponse(shell.render(HOME_CONTENT))


@router.get("/session", response_model=SessionResponse)
def session(shell: SessionShell = Depends(get_shell)):
    return SessionResponse(user=shell.user, loading=shell.loading)


@router.get("/profiles/{user_id}", response_model=ProfileResponse)
async def read_profile(
    user_id: str, backend: BackendClient = Depends(get_backend_client)
):
    profile = await helpers.get_profile(user_id, client=backend)
    return profile.as_dict()


@router.patch("/profiles/{user_id}", response_model=ProfileResponse)
async def patch_profile(
    user_id: str,
    payload: ProfileUpdateRequest,
    backend: BackendClient = Depends(get_backend_client),
):
    updates = payload.model_dump(exclude_unset=True, mode="json")
    profile = await helpers.update_profile(user_id, updates, client=backend)
    return profile.as_dict()


@router.post("/matches/find", response_model=FindMatchResponse)
async def find_match(
    payload: FindMatchRequest, backend: BackendClient = Depends(get_backend_client)
):
    match = await helpers.find_match(
        payload.user_id, payload.personality_type, client=backend
    )
    return FindMatchResponse(match=match)


@router.post("/matches", response_model=MatchResponse, status_code=201)
async def create_match(
    payload: CreateMatchRequest, backend: BackendClient = Depends(get_backend_client)
):
    match = await helpers.create_match(
        payload.user1_id, payload.user2_id, client=backend
    )
    return match.as_dict()


@router.post("/conversations", response_model=ConversationResponse, status_code=201)
async def create_conversation(
    payload: CreateConversationRequest,
    backend: BackendClient = Depends(get_backend_client),
):
    conversation = await helpers.create_conversation(payload.match_id, client=backend)
    return conversation.as_dict()


@router.patch("/conversations/{conversation_id}", response_model=ConversationResponse)
async def patch_conversation(
    conversation_id: str,
    payload: ConversationUpdateRequest,
    backend: BackendClient = Depends(get_backend_client),
):
    updates = payload.model_dump(exclude_unset=True, mode="json")
    conversation = await helpers.update_conversation(
        conversation_id, updates, client=backend
    )
    return conversation.as_dict()


@router.post("/voice-profiles", response_model=VoiceProfileResponse, status_code=201)
async def upload_voice_profile(
    user_id: str = Form(...),
    file: UploadFile = File(...),
    backend: BackendClient = Depends(get_backend_client),
):
    audio = await file.read()
    voice_profile = await helpers.upload_voice_profile(
        user_id,
        audio,
        content_type=file.content_type or helpers.VOICE_PROFILE_CONTENT_TYPE,
        client=backend,
    )
    logger.info("Stored voice profile %s for %s", voice_profile.id, user_id)
    return voice_profile.as_dict()
