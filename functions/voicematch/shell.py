"""
Session-aware page shell.

The shell keeps two bits of UI state, the signed-in ``user`` and a
``loading`` flag, and renders either a loading placeholder or the
navigation bar followed by page content.
"""

from __future__ import annotations

import asyncio
import html
import logging
from typing import Callable, Optional

from voicematch.backend_client import AuthSubscription, BackendClient
from voicematch.helpers import get_current_user

logger = logging.getLogger(__name__)

LOADING_TEXT = "Laden..."

_STYLE = """
body { margin: 0; font-family: Inter, system-ui, sans-serif; }
.loading { min-height: 100vh; display: flex; align-items: center; justify-content: center; }
.spinner { width: 48px; height: 48px; margin: 0 auto 16px; border: 4px solid #3b82f6;
  border-top-color: transparent; border-radius: 50%; animation: spin 1s linear infinite; }
@keyframes spin { to { transform: rotate(360deg); } }
nav { display: flex; justify-content: space-between; padding: 16px 24px; }
"""


def _document(body: str) -> str:
    return (
        "<!DOCTYPE html>\n"
        '<html lang="en">\n'
        f"<head><meta charset=\"utf-8\"><style>{_STYLE}</style></head>\n"
        f"<body>{body}</body>\n"
        "</html>\n"
    )


def render_navigation(user: Optional[dict]) -> str:
    if user:
        label = html.escape(user.get("email") or user.get("id") or "")
        account = f'<span class="account">{label}</span>'
    else:
        account = '<a class="account" href="/auth">Sign in</a>'
    return f'<nav><a href="/">Voice Match</a>{account}</nav>'


class SessionShell:
    """Tracks the signed-in user for the lifetime of the app."""

    def __init__(self, client: Optional[BackendClient]):
        self.client = client
        self.user: Optional[dict] = None
        self.loading = True
        self._auth_subscription: Optional[AuthSubscription] = None
        self._initial_check: Optional[asyncio.Task] = None
        self._event_seen = False
        self._listeners: list[Callable[["SessionShell"], None]] = []

    def add_listener(
        self, callback: Callable[["SessionShell"], None]
    ) -> Callable[[], None]:
        self._listeners.append(callback)

        def remove() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return remove

    async def mount(self) -> None:
        """Register for auth changes and start the initial session check."""
        if self.client is None:
            logger.warning("Backend client not initialized; treating session as signed out")
            self._resolve(None)
            return

        try:
            self._auth_subscription = await self.client.on_auth_state_change(
                self._on_auth_event
            )
        except Exception as exc:
            logger.warning("Auth listener registration failed: %s", exc)

        self._initial_check = asyncio.create_task(self._check_session())
        logger.info("Session shell mounted")

    async def wait_ready(self) -> None:
        if self._initial_check is not None:
            await self._initial_check

    async def teardown(self) -> None:
        if self._auth_subscription is not None:
            self._auth_subscription.unsubscribe()
            self._auth_subscription = None
        if self._initial_check is not None and not self._initial_check.done():
            await self._initial_check
        logger.info("Session shell torn down")

    async def _check_session(self) -> None:
        user = await get_current_user(client=self.client)
        if self._event_seen:
            # An auth event already reported a fresher session.
            return
        self._resolve(user)

    def _on_auth_event(self, event: str, user: Optional[dict]) -> None:
        logger.info("Auth state changed: %s", event)
        self._event_seen = True
        self._resolve(user)

    def _resolve(self, user: Optional[dict]) -> None:
        self.user = user
        if self.loading:
            self.loading = False
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("Session listener %r failed", listener)

    def render(self, content: str = "") -> str:
        if self.loading:
            return _document(
                '<div class="loading"><div>'
                '<div class="spinner"></div>'
                f"<p>{LOADING_TEXT}</p>"
                "</div></div>"
            )
        return _document(render_navigation(self.user) + content)
