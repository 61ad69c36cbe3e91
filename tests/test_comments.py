"""
Comment endpoint tests: adding, listing and deleting comments on an
article, including ownership checks and viewer-relative author flags.
"""
import pytest
from httpx import AsyncClient


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

async def _register(client: AsyncClient, username: str) -> str:
    resp = await client.post("/api/users", json={"user": {
        "username": username,
        "email": f"{username}@example.com",
        "password": "password123",
    }})
    assert resp.status_code == 201, resp.text
    return resp.json()["user"]["token"]


def _auth(token: str) -> dict:
    return {"Authorization": f"Token {token}"}


async def _article(client: AsyncClient, token: str, title: str = "Commented") -> str:
    resp = await client.post("/api/articles", headers=_auth(token), json={"article": {
        "title": title, "description": "d", "body": "b",
    }})
    assert resp.status_code == 201, resp.text
    return resp.json()["article"]["slug"]


async def _comment(client: AsyncClient, token: str, slug: str, body: str) -> dict:
    resp = await client.post(
        f"/api/articles/{slug}/comments",
        headers=_auth(token),
        json={"comment": {"body": body}},
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["comment"]


# ---------------------------------------------------------------------------
# Add + list
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_add_comment(async_client: AsyncClient):
    author = await _register(async_client, "author")
    reader = await _register(async_client, "reader")
    slug = await _article(async_client, author)

    comment = await _comment(async_client, reader, slug, "Thank you so much!")
    assert comment["id"] > 0
    assert comment["body"] == "Thank you so much!"
    assert comment["createdAt"].endswith("Z")
    assert comment["author"] == {
        "username": "reader", "bio": None, "image": None, "following": False,
    }


@pytest.mark.asyncio
async def test_add_comment_requires_auth(async_client: AsyncClient):
    author = await _register(async_client, "author")
    slug = await _article(async_client, author)
    resp = await async_client.post(
        f"/api/articles/{slug}/comments", json={"comment": {"body": "hi"}}
    )
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_add_empty_comment_returns_422(async_client: AsyncClient):
    author = await _register(async_client, "author")
    slug = await _article(async_client, author)
    resp = await async_client.post(
        f"/api/articles/{slug}/comments",
        headers=_auth(author),
        json={"comment": {"body": ""}},
    )
    assert resp.status_code == 422
    assert "comment.body" in resp.json()["errors"]


@pytest.mark.asyncio
async def test_comment_on_unknown_article_returns_404(async_client: AsyncClient):
    reader = await _register(async_client, "reader")
    resp = await async_client.post(
        "/api/articles/missing/comments",
        headers=_auth(reader),
        json={"comment": {"body": "hello?"}},
    )
    assert resp.status_code == 404
    assert resp.json() == {"errors": {"article": ["not found"]}}


@pytest.mark.asyncio
async def test_list_comments_newest_first(async_client: AsyncClient):
    author = await _register(async_client, "author")
    slug = await _article(async_client, author)
    await _comment(async_client, author, slug, "first")
    await _comment(async_client, author, slug, "second")

    resp = await async_client.get(f"/api/articles/{slug}/comments")
    assert resp.status_code == 200
    assert [c["body"] for c in resp.json()["comments"]] == ["second", "first"]


@pytest.mark.asyncio
async def test_list_comments_only_for_that_article(async_client: AsyncClient):
    author = await _register(async_client, "author")
    one = await _article(async_client, author, "One")
    two = await _article(async_client, author, "Two")
    await _comment(async_client, author, one, "on one")
    await _comment(async_client, author, two, "on two")

    resp = await async_client.get(f"/api/articles/{one}/comments")
    assert [c["body"] for c in resp.json()["comments"]] == ["on one"]


@pytest.mark.asyncio
async def test_comment_author_following_is_viewer_relative(async_client: AsyncClient):
    author = await _register(async_client, "author")
    commenter = await _register(async_client, "commenter")
    reader = await _register(async_client, "reader")
    slug = await _article(async_client, author)
    await _comment(async_client, commenter, slug, "nice")
    await async_client.post("/api/profiles/commenter/follow", headers=_auth(reader))

    url = f"/api/articles/{slug}/comments"
    as_reader = (await async_client.get(url, headers=_auth(reader))).json()["comments"]
    as_author = (await async_client.get(url, headers=_auth(author))).json()["comments"]
    anonymous = (await async_client.get(url)).json()["comments"]

    assert as_reader[0]["author"]["following"] is True
    assert as_author[0]["author"]["following"] is False
    assert anonymous[0]["author"]["following"] is False


# ---------------------------------------------------------------------------
# Delete
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_delete_own_comment(async_client: AsyncClient):
    author = await _register(async_client, "author")
    slug = await _article(async_client, author)
    comment = await _comment(async_client, author, slug, "oops")

    resp = await async_client.delete(
        f"/api/articles/{slug}/comments/{comment['id']}", headers=_auth(author)
    )
    assert resp.status_code == 204

    listed = await async_client.get(f"/api/articles/{slug}/comments")
    assert listed.json()["comments"] == []


@pytest.mark.asyncio
async def test_delete_someone_elses_comment_returns_403(async_client: AsyncClient):
    author = await _register(async_client, "author")
    commenter = await _register(async_client, "commenter")
    slug = await _article(async_client, author)
    comment = await _comment(async_client, commenter, slug, "mine")

    # Owning the article is not enough.
    resp = await async_client.delete(
        f"/api/articles/{slug}/comments/{comment['id']}", headers=_auth(author)
    )
    assert resp.status_code == 403
    assert resp.json() == {"errors": {"comment": ["you can only delete your own comments"]}}


@pytest.mark.asyncio
async def test_delete_comment_through_wrong_article_returns_404(async_client: AsyncClient):
    author = await _register(async_client, "author")
    one = await _article(async_client, author, "One")
    two = await _article(async_client, author, "Two")
    comment = await _comment(async_client, author, one, "on one")

    resp = await async_client.delete(
        f"/api/articles/{two}/comments/{comment['id']}", headers=_auth(author)
    )
    assert resp.status_code == 404
    assert resp.json() == {"errors": {"comment": ["not found"]}}


@pytest.mark.asyncio
async def test_delete_unknown_comment_returns_404(async_client: AsyncClient):
    author = await _register(async_client, "author")
    slug = await _article(async_client, author)
    resp = await async_client.delete(f"/api/articles/{slug}/comments/9999", headers=_auth(author))
    assert resp.status_code == 404
