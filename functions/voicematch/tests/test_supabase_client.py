import unittest
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

from postgrest.exceptions import APIError

from voicematch.backend_client import NO_ROWS_CODE
from voicematch.supabase_client import SupabaseBackendClient


def _response(data):
    return SimpleNamespace(data=data)


class SupabaseBackendClientTests(unittest.IsolatedAsyncioTestCase):
    """
    Exercises the adapter against a mocked AsyncClient so no network is needed.
    """

    def setUp(self):
        self.fake = MagicMock()
        patcher = patch(
            "voicematch.supabase_client.acreate_client",
            new=AsyncMock(return_value=self.fake),
        )
        self.acreate_client = patcher.start()
        self.addCleanup(patcher.stop)
        self.backend = SupabaseBackendClient(
            "https://demo.supabase.co", "anon", realtime_events_per_second=5
        )

    async def test_client_created_lazily_with_options(self):
        self.acreate_client.assert_not_awaited()
        self.fake.auth.get_user = AsyncMock(return_value=None)

        await self.backend.get_user()
        await self.backend.get_user()

        self.acreate_client.assert_awaited_once()
        args, kwargs = self.acreate_client.call_args
        self.assertEqual(args, ("https://demo.supabase.co", "anon"))
        options = kwargs["options"]
        self.assertTrue(options.persist_session)
        self.assertTrue(options.auto_refresh_token)
        self.assertEqual(options.realtime, {"params": {"eventsPerSecond": 5}})

    async def test_get_user_without_session(self):
        self.fake.auth.get_user = AsyncMock(return_value=None)
        self.assertIsNone(await self.backend.get_user())

        self.fake.auth.get_user = AsyncMock(return_value=SimpleNamespace(user=None))
        self.assertIsNone(await self.backend.get_user())

    async def test_get_user_returns_user_dict(self):
        self.fake.auth.get_user = AsyncMock(
            return_value=SimpleNamespace(user={"id": "u1", "email": "a@b.test"})
        )
        self.assertEqual(
            await self.backend.get_user(), {"id": "u1", "email": "a@b.test"}
        )

    async def test_auth_callback_maps_session_to_user(self):
        self.fake.auth.on_auth_state_change = MagicMock(return_value="subscription")
        events = []

        handle = await self.backend.on_auth_state_change(
            lambda event, user: events.append((event, user))
        )

        self.assertEqual(handle, "subscription")
        registered = self.fake.auth.on_auth_state_change.call_args[0][0]
        registered("SIGNED_IN", SimpleNamespace(user={"id": "u2"}))
        registered("SIGNED_OUT", None)
        self.assertEqual(events, [("SIGNED_IN", {"id": "u2"}), ("SIGNED_OUT", None)])

    async def test_select_one_uses_single_row_query(self):
        query = self.fake.table.return_value.select.return_value.eq.return_value
        query.single.return_value.execute = AsyncMock(
            return_value=_response({"id": "u1"})
        )

        row = await self.backend.select_one("profiles", "id", "u1")

        self.assertEqual(row, {"id": "u1"})
        self.fake.table.assert_called_with("profiles")
        self.fake.table.return_value.select.assert_called_with("*")
        self.fake.table.return_value.select.return_value.eq.assert_called_with("id", "u1")

    async def test_update_one_returns_updated_row(self):
        query = self.fake.table.return_value.update.return_value.eq.return_value
        query.execute = AsyncMock(return_value=_response([{"id": "u1", "bio": "hi"}]))

        row = await self.backend.update_one("profiles", "id", "u1", {"bio": "hi"})

        self.assertEqual(row, {"id": "u1", "bio": "hi"})
        self.fake.table.return_value.update.assert_called_with({"bio": "hi"})

    async def test_update_one_without_match_raises(self):
        query = self.fake.table.return_value.update.return_value.eq.return_value
        query.execute = AsyncMock(return_value=_response([]))

        with self.assertRaises(APIError) as ctx:
            await self.backend.update_one("profiles", "id", "nobody", {"bio": "x"})
        self.assertEqual(ctx.exception.code, NO_ROWS_CODE)

    async def test_insert_one_returns_stored_row(self):
        self.fake.table.return_value.insert.return_value.execute = AsyncMock(
            return_value=_response([{"id": "m1", "status": "pending"}])
        )
        row = await self.backend.insert_one("matches", {"status": "pending"})
        self.assertEqual(row, {"id": "m1", "status": "pending"})

    async def test_insert_one_without_rows_raises(self):
        self.fake.table.return_value.insert.return_value.execute = AsyncMock(
            return_value=_response([])
        )
        with self.assertRaises(APIError) as ctx:
            await self.backend.insert_one("matches", {"status": "pending"})
        self.assertEqual(ctx.exception.code, NO_ROWS_CODE)

    async def test_rpc_returns_data(self):
        self.fake.rpc.return_value.execute = AsyncMock(
            return_value=_response({"user_id": "u2"})
        )
        result = await self.backend.rpc("find_match", {"user_id": "u1"})
        self.assertEqual(result, {"user_id": "u2"})
        self.fake.rpc.assert_called_with("find_match", {"user_id": "u1"})

    async def test_upload_and_public_url(self):
        bucket = self.fake.storage.from_.return_value
        bucket.upload = AsyncMock()
        bucket.get_public_url = AsyncMock(return_value="https://cdn.test/a.webm")

        await self.backend.upload("voice-profiles", "a.webm", b"x", "audio/webm")
        url = await self.backend.public_url("voice-profiles", "a.webm")

        bucket.upload.assert_awaited_once_with(
            "a.webm", b"x", {"content-type": "audio/webm"}
        )
        self.assertEqual(url, "https://cdn.test/a.webm")

    async def test_public_url_from_sync_storage_call(self):
        bucket = self.fake.storage.from_.return_value
        bucket.get_public_url = MagicMock(return_value="https://cdn.test/b.webm")
        url = await self.backend.public_url("voice-profiles", "b.webm")
        self.assertEqual(url, "https://cdn.test/b.webm")

    async def test_subscribe_binds_each_filter_and_unwraps_record(self):
        channel = MagicMock()
        channel.subscribe = AsyncMock()
        self.fake.channel.return_value = channel
        self.fake.remove_channel = AsyncMock()
        received = []

        handle = await self.backend.subscribe(
            "matches",
            event="INSERT",
            table="matches",
            filters=["user1_id=eq.u1", "user2_id=eq.u1"],
            callback=received.append,
        )

        self.fake.channel.assert_called_with("matches")
        self.assertEqual(channel.on_postgres_changes.call_count, 2)
        filters = [
            call.kwargs["filter"] for call in channel.on_postgres_changes.call_args_list
        ]
        self.assertEqual(filters, ["user1_id=eq.u1", "user2_id=eq.u1"])
        first = channel.on_postgres_changes.call_args_list[0]
        self.assertEqual(first.args, ("INSERT",))
        self.assertEqual(first.kwargs["table"], "matches")
        self.assertEqual(first.kwargs["schema"], "public")
        channel.subscribe.assert_awaited_once()

        first.kwargs["callback"]({"data": {"record": {"id": "1"}}})
        self.assertEqual(received, [{"id": "1"}])

        await handle.unsubscribe()
        self.fake.remove_channel.assert_awaited_once_with(channel)


if __name__ == "__main__":
    unittest.main()
