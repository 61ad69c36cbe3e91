"""
Enrichment assembler: turns stored articles and comments into
viewer-relative views.

Design notes
------------
- ``enrich_article``, ``enrich_comment`` and ``enrich_profile`` are pure:
  every viewer-dependent fact (favorited, following, count) is passed in.
- The async helpers gather those facts in bulk.  For a page of N articles
  they issue exactly three statements: favorite counts grouped by article,
  the viewer's favorites restricted to the page, and the viewer's follow
  edges restricted to the page's authors.  Results are joined in memory.
- Repositories are passed in explicitly, so the helpers work against any
  object exposing ``counts_for`` / ``favorited_ids`` / ``followed_ids``.
- Anonymous viewers never see ``favorited`` or ``following`` set, and a
  viewer never shows as following themselves.
"""
from datetime import datetime, timezone


def isoformat(value: datetime) -> str:
    """Render *value* as ``YYYY-MM-DDTHH:MM:SS.mmmZ``; naive values are UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def sorted_tag_names(names) -> list[str]:
    return sorted(set(names))


def enrich_profile(user, following: bool = False) -> dict:
    return {
        "username": user.username,
        "bio": user.bio,
        "image": user.image,
        "following": following,
    }


def _author_following(author_id: int, following: bool, viewer_id: int | None) -> bool:
    if viewer_id is None or viewer_id == author_id:
        return False
    return following


def enrich_article(
    article,
    tag_names,
    favorited: bool,
    following: bool,
    favorites_count: int,
    viewer_id: int | None = None,
    include_body: bool = True,
) -> dict:
    """
    Build the article view for *viewer_id* (None for anonymous).

    *article* must have its ``author`` loaded.  The tag list is
    deduplicated and sorted; the favorite count is clamped at zero.
    """
    view = {
        "slug": article.slug,
        "title": article.title,
        "description": article.description,
    }
    if include_body:
        view["body"] = article.body
    view.update(
        {
            "tagList": sorted_tag_names(tag_names),
            "createdAt": isoformat(article.created_at),
            "updatedAt": isoformat(article.updated_at),
            "favorited": bool(favorited) and viewer_id is not None,
            "favoritesCount": max(int(favorites_count or 0), 0),
            "author": enrich_profile(
                article.author,
                _author_following(article.author_id, bool(following), viewer_id),
            ),
        }
    )
    return view


def enrich_comment(comment, following: bool, viewer_id: int | None = None) -> dict:
    """Build the comment view; *comment* must have its ``author`` loaded."""
    return {
        "id": comment.id,
        "createdAt": isoformat(comment.created_at),
        "updatedAt": isoformat(comment.updated_at),
        "body": comment.body,
        "author": enrich_profile(
            comment.author,
            _author_following(comment.author_id, bool(following), viewer_id),
        ),
    }


# ---------------------------------------------------------------------------
# Batched assembly
# ---------------------------------------------------------------------------

async def _article_facts(favorites, follows, articles, viewer_id):
    article_ids = [a.id for a in articles]
    counts = await favorites.counts_for(article_ids)
    if viewer_id is None:
        return counts, set(), set()
    favorited = await favorites.favorited_ids(viewer_id, article_ids)
    # Self-follow is never reported, so the viewer's own id is not asked for.
    author_ids = {a.author_id for a in articles} - {viewer_id}
    followed = await follows.followed_ids(viewer_id, author_ids)
    return counts, favorited, followed


async def enrich_article_list(
    favorites,
    follows,
    articles,
    viewer_id: int | None = None,
    include_body: bool = False,
) -> dict:
    """
    Enrich a page of articles for *viewer_id*.

    Returns ``{"articles": [...], "articlesCount": n}`` where ``n`` is the
    number of articles in the page.  An empty page issues no queries.
    """
    articles = list(articles)
    if not articles:
        return {"articles": [], "articlesCount": 0}

    counts, favorited, followed = await _article_facts(favorites, follows, articles, viewer_id)
    views = [
        enrich_article(
            article,
            [tag.name for tag in article.tags],
            favorited=article.id in favorited,
            following=article.author_id in followed,
            favorites_count=counts.get(article.id, 0),
            viewer_id=viewer_id,
            include_body=include_body,
        )
        for article in articles
    ]
    return {"articles": views, "articlesCount": len(views)}


async def enrich_single_article(favorites, follows, article, viewer_id: int | None = None) -> dict:
    """Enrich one article, body included."""
    result = await enrich_article_list(
        favorites, follows, [article], viewer_id=viewer_id, include_body=True
    )
    return result["articles"][0]


async def enrich_comment_list(follows, comments, viewer_id: int | None = None) -> list[dict]:
    """Enrich comments with one follow lookup across their distinct authors."""
    comments = list(comments)
    followed: set[int] = set()
    if viewer_id is not None and comments:
        author_ids = {c.author_id for c in comments} - {viewer_id}
        followed = await follows.followed_ids(viewer_id, author_ids)
    return [
        enrich_comment(comment, comment.author_id in followed, viewer_id)
        for comment in comments
    ]
