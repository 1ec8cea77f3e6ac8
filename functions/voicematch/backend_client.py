"""
Backend abstraction over the hosted service and an in-memory test implementation.
"""

from __future__ import annotations

import copy
import uuid
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Protocol

from postgrest.exceptions import APIError


AuthCallback = Callable[[str, Optional[dict]], None]
ChangeCallback = Callable[[dict], None]

NO_ROWS_CODE = "PGRST116"
UNKNOWN_FUNCTION_CODE = "PGRST202"


class BackendNotInitializedError(RuntimeError):
    """Raised when the backend client was never configured."""

    def __init__(self, message: str = "Supabase client not initialized"):
        super().__init__(message)


class AuthSubscription(Protocol):
    def unsubscribe(self) -> None:
        ...


class Subscription(Protocol):
    async def unsubscribe(self) -> None:
        ...


class NoopSubscription:
    """Handle returned when a realtime subscription could not be set up."""

    async def unsubscribe(self) -> None:
        return None


class BackendClient(Protocol):
    """Defines the calls the helpers make against the hosted backend."""

    async def get_user(self) -> Optional[dict]:
        ...

    async def on_auth_state_change(self, callback: AuthCallback) -> AuthSubscription:
        ...

    async def select_one(self, table: str, column: str, value: Any) -> dict:
        ...

    async def update_one(
        self, table: str, column: str, value: Any, values: dict
    ) -> dict:
        ...

    async def insert_one(self, table: str, values: dict) -> dict:
        ...

    async def rpc(self, function: str, params: dict) -> Any:
        ...

    async def upload(
        self, bucket: str, path: str, data: bytes, content_type: str
    ) -> None:
        ...

    async def public_url(self, bucket: str, path: str) -> str:
        ...

    async def subscribe(
        self,
        channel: str,
        *,
        event: str,
        table: str,
        filters: list[str],
        callback: ChangeCallback,
    ) -> Subscription:
        ...


def eq_filter(column: str, value: Any) -> str:
    """Realtime column predicate, e.g. ``match_id=eq.42``."""
    return f"{column}=eq.{value}"


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def no_rows_error() -> APIError:
    return APIError(
        {
            "message": "JSON object requested, multiple (or no) rows returned",
            "code": NO_ROWS_CODE,
            "details": "The result contains 0 rows",
            "hint": None,
        }
    )


@dataclass(eq=False)
class _AuthListener:
    client: "InMemoryBackendClient"
    callback: AuthCallback

    def unsubscribe(self) -> None:
        if self in self.client.auth_listeners:
            self.client.auth_listeners.remove(self)


@dataclass(eq=False)
class _ChannelBinding:
    client: "InMemoryBackendClient"
    channel: str
    event: str
    table: str
    filters: list[str]
    callback: ChangeCallback
    active: bool = True

    def matches(self, event: str, table: str, row: dict) -> bool:
        if not self.active or table != self.table:
            return False
        if self.event not in ("*", event):
            return False
        if not self.filters:
            return True
        # Each predicate is its own binding on the real service, so any match counts.
        for predicate in self.filters:
            column, _, expected = predicate.partition("=eq.")
            if str(row.get(column)) == expected:
                return True
        return False

    async def unsubscribe(self) -> None:
        self.active = False
        if self in self.client.channels:
            self.client.channels.remove(self)


class InMemoryBackendClient:
    """Simple in-memory backend for development and tests."""

    def __init__(
        self,
        user: Optional[dict] = None,
        rpc_handlers: Optional[Dict[str, Callable[[dict], Any]]] = None,
        base_url: str = "https://example.test",
    ):
        self.user = user
        self.base_url = base_url
        self.rpc_handlers: Dict[str, Callable[[dict], Any]] = dict(rpc_handlers or {})
        self.tables: Dict[str, Dict[str, dict]] = defaultdict(dict)
        self.objects: Dict[str, Dict[str, bytes]] = defaultdict(dict)
        self.auth_listeners: list[_AuthListener] = []
        self.channels: list[_ChannelBinding] = []
        self.failures: Dict[str, Exception] = {}
        self.calls: list[str] = []

    def fail(self, operation: str, error: Exception) -> None:
        """Make the next and all later calls to ``operation`` raise ``error``."""
        self.failures[operation] = error

    def seed(self, table: str, row: dict) -> dict:
        stored = dict(row)
        stored.setdefault("id", uuid.uuid4().hex)
        self.tables[table][str(stored["id"])] = stored
        return copy.deepcopy(stored)

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        self.tables.clear()
        self.objects.clear()
        self.failures.clear()
        self.calls.clear()
        self.channels.clear()
        self.auth_listeners.clear()

    def emit_auth_event(self, event: str, user: Optional[dict]) -> None:
        """Simulate a sign-in, sign-out or token refresh."""
        self.user = user
        for listener in list(self.auth_listeners):
            listener.callback(event, user)

    def _call(self, operation: str) -> None:
        self.calls.append(operation)
        error = self.failures.get(operation)
        if error is not None:
            raise error

    def _find(self, table: str, column: str, value: Any) -> list[dict]:
        return [
            row
            for row in self.tables[table].values()
            if str(row.get(column)) == str(value)
        ]

    def _broadcast(self, event: str, table: str, row: dict) -> None:
        for binding in list(self.channels):
            if binding.matches(event, table, row):
                binding.callback(copy.deepcopy(row))

    async def get_user(self) -> Optional[dict]:
        self._call("get_user")
        return copy.deepcopy(self.user)

    async def on_auth_state_change(self, callback: AuthCallback) -> _AuthListener:
        self._call("on_auth_state_change")
        listener = _AuthListener(client=self, callback=callback)
        self.auth_listeners.append(listener)
        return listener

    async def select_one(self, table: str, column: str, value: Any) -> dict:
        self._call("select")
        rows = self._find(table, column, value)
        if len(rows) != 1:
            raise no_rows_error()
        return copy.deepcopy(rows[0])

    async def update_one(
        self, table: str, column: str, value: Any, values: dict
    ) -> dict:
        self._call("update")
        rows = self._find(table, column, value)
        if len(rows) != 1:
            raise no_rows_error()
        row = rows[0]
        row.update(copy.deepcopy(values))
        self._broadcast("UPDATE", table, row)
        return copy.deepcopy(row)

    async def insert_one(self, table: str, values: dict) -> dict:
        self._call("insert")
        row = {"id": uuid.uuid4().hex, "created_at": _utcnow_iso()}
        row.update(copy.deepcopy(values))
        self.tables[table][str(row["id"])] = row
        self._broadcast("INSERT", table, row)
        return copy.deepcopy(row)

    async def rpc(self, function: str, params: dict) -> Any:
        self._call("rpc")
        handler = self.rpc_handlers.get(function)
        if handler is None:
            raise APIError(
                {
                    "message": f"Could not find the function public.{function}",
                    "code": UNKNOWN_FUNCTION_CODE,
                    "details": None,
                    "hint": None,
                }
            )
        return handler(dict(params))

    async def upload(
        self, bucket: str, path: str, data: bytes, content_type: str
    ) -> None:
        self._call("upload")
        self.objects[bucket][path] = bytes(data)

    async def public_url(self, bucket: str, path: str) -> str:
        self._call("public_url")
        return f"{self.base_url}/storage/v1/object/public/{bucket}/{path}"

    async def subscribe(
        self,
        channel: str,
        *,
        event: str,
        table: str,
        filters: list[str],
        callback: ChangeCallback,
    ) -> _ChannelBinding:
        self._call("subscribe")
        binding = _ChannelBinding(
            client=self,
            channel=channel,
            event=event,
            table=table,
            filters=list(filters),
            callback=callback,
        )
        self.channels.append(binding)
        return binding
