"""
Tag list tests, including the Redis cache-aside path.

Redis itself is replaced by a small in-memory stand-in exposing the three
commands CacheManager uses, so the cache logic runs without a server.
"""
import json

import pytest
from httpx import AsyncClient

from conduit.cache import TAGS_KEY, cache
from conduit.config import settings


class FakeRedis:
    def __init__(self):
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int | None] = {}

    async def get(self, key):
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        self.store[key] = value
        self.ttls[key] = ex

    async def delete(self, key):
        self.store.pop(key, None)


async def _register(client: AsyncClient, username: str) -> str:
    resp = await client.post("/api/users", json={"user": {
        "username": username,
        "email": f"{username}@example.com",
        "password": "password123",
    }})
    return resp.json()["user"]["token"]


async def _create(client: AsyncClient, token: str, title: str, tags: list[str]) -> None:
    resp = await client.post("/api/articles", headers={"Authorization": f"Token {token}"}, json={
        "article": {"title": title, "description": "d", "body": "b", "tagList": tags},
    })
    assert resp.status_code == 201, resp.text


@pytest.mark.asyncio
async def test_tags_empty(async_client: AsyncClient):
    resp = await async_client.get("/api/tags")
    assert resp.status_code == 200
    assert resp.json() == {"tags": []}


@pytest.mark.asyncio
async def test_tags_sorted_and_distinct(async_client: AsyncClient):
    token = await _register(async_client, "jake")
    await _create(async_client, token, "One", ["zeta", "alpha"])
    await _create(async_client, token, "Two", ["alpha", "mid"])

    resp = await async_client.get("/api/tags")
    assert resp.json()["tags"] == ["alpha", "mid", "zeta"]


@pytest.mark.asyncio
async def test_tags_are_case_sensitive(async_client: AsyncClient):
    token = await _register(async_client, "jake")
    await _create(async_client, token, "Mixed", ["Python", "python"])

    resp = await async_client.get("/api/tags")
    assert resp.json()["tags"] == ["Python", "python"]


@pytest.mark.asyncio
async def test_tags_served_from_cache(async_client: AsyncClient, monkeypatch):
    fake = FakeRedis()
    monkeypatch.setattr(cache, "_redis", fake)
    fake.store[TAGS_KEY] = json.dumps(["cached"])

    resp = await async_client.get("/api/tags")
    assert resp.json()["tags"] == ["cached"]
    assert int(resp.headers["x-query-count"]) == 0


@pytest.mark.asyncio
async def test_tag_cache_filled_and_invalidated(async_client: AsyncClient, monkeypatch):
    fake = FakeRedis()
    monkeypatch.setattr(cache, "_redis", fake)
    token = await _register(async_client, "jake")
    await _create(async_client, token, "First", ["one"])

    assert (await async_client.get("/api/tags")).json()["tags"] == ["one"]
    assert json.loads(fake.store[TAGS_KEY]) == ["one"]
    assert fake.ttls[TAGS_KEY] == settings.CACHE_TTL_TAGS

    await _create(async_client, token, "Second", ["two"])
    assert TAGS_KEY not in fake.store
    assert (await async_client.get("/api/tags")).json()["tags"] == ["one", "two"]
