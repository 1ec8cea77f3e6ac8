"""
Supabase-backed implementation of the backend client.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Optional

from supabase import AsyncClient, AsyncClientOptions, acreate_client

from voicematch.backend_client import AuthCallback, ChangeCallback, no_rows_error

logger = logging.getLogger(__name__)

REALTIME_SCHEMA = "public"


def _user_dict(user: Any) -> Optional[dict]:
    if user is None:
        return None
    if hasattr(user, "model_dump"):
        return user.model_dump(mode="json")
    return dict(user)


def _record_from_payload(payload: dict) -> dict:
    # Realtime payloads carry the new row under data.record.
    data = payload.get("data", payload)
    return data.get("record") or data.get("new") or {}


class _ChannelSubscription:
    def __init__(self, client: AsyncClient, channel):
        self._client = client
        self._channel = channel

    async def unsubscribe(self) -> None:
        await self._client.remove_channel(self._channel)


class SupabaseBackendClient:
    """
    Thin adapter over the async Supabase client.

    The underlying client is created on first use. Errors raised by the
    postgrest, auth and storage libraries propagate untouched.
    """

    def __init__(
        self,
        url: str,
        anon_key: str,
        *,
        persist_session: bool = True,
        auto_refresh_token: bool = True,
        realtime_events_per_second: int = 2,
    ):
        if not url or not anon_key:
            raise ValueError("Supabase URL and anon key are required")
        self.url = url
        self.anon_key = anon_key
        self.persist_session = persist_session
        self.auto_refresh_token = auto_refresh_token
        self.realtime_events_per_second = realtime_events_per_second
        self._client: Optional[AsyncClient] = None

    def _options(self) -> AsyncClientOptions:
        return AsyncClientOptions(
            persist_session=self.persist_session,
            auto_refresh_token=self.auto_refresh_token,
            realtime={
                "params": {"eventsPerSecond": self.realtime_events_per_second}
            },
        )

    async def _connect(self) -> AsyncClient:
        if self._client is None:
            self._client = await acreate_client(
                self.url, self.anon_key, options=self._options()
            )
            logger.info("Supabase client created for %s", self.url)
        return self._client

    async def get_user(self) -> Optional[dict]:
        client = await self._connect()
        response = await client.auth.get_user()
        if response is None:
            return None
        return _user_dict(response.user)

    async def on_auth_state_change(self, callback: AuthCallback):
        client = await self._connect()

        def handle(event, session):
            user = session.user if session is not None else None
            callback(str(event), _user_dict(user))

        return client.auth.on_auth_state_change(handle)

    async def select_one(self, table: str, column: str, value: Any) -> dict:
        client = await self._connect()
        response = (
            await client.table(table).select("*").eq(column, value).single().execute()
        )
        return response.data

    async def update_one(
        self, table: str, column: str, value: Any, values: dict
    ) -> dict:
        client = await self._connect()
        response = await client.table(table).update(values).eq(column, value).execute()
        rows = response.data or []
        if len(rows) != 1:
            # Mirror the single-row contract of select_one.
            raise no_rows_error()
        return rows[0]

    async def insert_one(self, table: str, values: dict) -> dict:
        client = await self._connect()
        response = await client.table(table).insert(values).execute()
        rows = response.data or []
        if not rows:
            raise no_rows_error()
        return rows[0]

    async def rpc(self, function: str, params: dict) -> Any:
        client = await self._connect()
        response = await client.rpc(function, params).execute()
        return response.data

    async def upload(
        self, bucket: str, path: str, data: bytes, content_type: str
    ) -> None:
        client = await self._connect()
        await client.storage.from_(bucket).upload(
            path, data, {"content-type": content_type}
        )

    async def public_url(self, bucket: str, path: str) -> str:
        client = await self._connect()
        url = client.storage.from_(bucket).get_public_url(path)
        if inspect.isawaitable(url):
            url = await url
        return url

    async def subscribe(
        self,
        channel: str,
        *,
        event: str,
        table: str,
        filters: list[str],
        callback: ChangeCallback,
    ) -> _ChannelSubscription:
        client = await self._connect()
        realtime_channel = client.channel(channel)

        def handle(payload):
            callback(_record_from_payload(payload))

        # Realtime accepts one column predicate per binding.
        for predicate in filters or [None]:
            realtime_channel.on_postgres_changes(
                event,
                callback=handle,
                table=table,
                schema=REALTIME_SCHEMA,
                filter=predicate,
            )
        await realtime_channel.subscribe()
        return _ChannelSubscription(client, realtime_channel)
