"""Tests for the REST client."""

from unittest.mock import AsyncMock

import pytest

from sltbot.api import SLTChatAPI

BASE = "https://chat.example"


@pytest.fixture
async def api():
    client = SLTChatAPI("tok", "bot1", base_url=BASE + "/")
    yield client
    await client.close()


class TestSLTChatAPI:
    async def test_cookie_carries_credentials(self, api):
        assert api.headers == {"Cookie": "token=tok; op=bot1"}
        assert api.base_url == BASE

    async def test_get_user_goes_through_cache(self, api, monkeypatch):
        get_json = AsyncMock(return_value={"id": "u1", "servers": ["s1"]})
        monkeypatch.setattr(api, "get_json", get_json)

        first = await api.get_user("u1")
        second = await api.get_user("u1")

        assert first == second == {"id": "u1", "servers": ["s1"]}
        get_json.assert_awaited_once_with(f"{BASE}/api/user/u1/")

    async def test_get_server_url(self, api, monkeypatch):
        get_json = AsyncMock(return_value={"id": "s1"})
        monkeypatch.setattr(api, "get_json", get_json)

        await api.get_server("s1")

        get_json.assert_awaited_once_with(f"{BASE}/api/server/s1/")

    async def test_failed_lookup_is_none(self, api, monkeypatch):
        monkeypatch.setattr(api, "get_json", AsyncMock(side_effect=RuntimeError("500")))
        assert await api.get_user("u1") is None

    async def test_join_server_posts_form(self, api, monkeypatch):
        post_form = AsyncMock()
        monkeypatch.setattr(api, "post_form", post_form)

        await api.join_server("s9")

        post_form.assert_awaited_once_with("/api/new_server", {"server_id": "s9"})

    async def test_change_posts_form(self, api, monkeypatch):
        post_form = AsyncMock()
        monkeypatch.setattr(api, "post_form", post_form)

        await api.change("name", "My Bot")

        post_form.assert_awaited_once_with(
            "/api/change", {"change_key": "name", "change_value": "My Bot"}
        )

    async def test_close_without_session(self):
        client = SLTChatAPI("tok", "bot1")
        await client.close()
        assert client._session is None
