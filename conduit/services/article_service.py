"""
Article service: business logic for the Article aggregate.

Design notes
------------
- Every view returned here goes through the enrichment assembler, so
  list, detail, create, update and favorite responses agree on how
  ``favorited``, ``following`` and ``favoritesCount`` are computed.
- Listing filters are resolved once into an ``ArticleFilter`` and handed
  to a single query; a filter naming an unknown user or tag yields an
  empty page rather than an error.
- Slugs stay unique: a colliding slug gets ``-1``, ``-2``, ... appended.
  The write happens in a savepoint; when a concurrent request claims the
  same slug first, the slug is recomputed and the write retried.
- Service functions flush but do not commit; the transaction boundary
  is owned by the ``get_db`` dependency in the router layer.
"""
import logging
import re

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from conduit.exceptions import ConflictError, ForbiddenError, NotFoundError
from conduit.models import Article, utcnow
from conduit.repositories import (
    ArticleFilter,
    ArticleRepository,
    FavoriteRepository,
    FollowRepository,
    TagRepository,
    UserRepository,
)
from conduit.schemas import NewArticle, UpdateArticle
from conduit.services import tag_service
from conduit.services.enrichment import enrich_article_list, enrich_single_article

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Slugs
# ---------------------------------------------------------------------------

_SLUG_STRIP_RE = re.compile(r"[^a-z0-9\s-]")
_SLUG_SPACE_RE = re.compile(r"\s+")
_SLUG_DASH_RE = re.compile(r"-+")

_EMPTY_SLUG = "article"

_SLUG_ATTEMPTS = 5


def slugify(text: str) -> str:
    """Return a URL-safe, lowercase slug derived from *text*."""
    text = _SLUG_STRIP_RE.sub("", text.lower())
    text = _SLUG_SPACE_RE.sub("-", text.strip())
    return _SLUG_DASH_RE.sub("-", text).strip("-")


async def assign_slug(
    articles: ArticleRepository, title: str, exclude_article_id: int | None = None
) -> str:
    """
    Return a slug for *title* not used by any other article.

    *exclude_article_id* is the article being updated; its own current
    slug does not count as a collision.
    """
    base = slugify(title) or _EMPTY_SLUG
    taken = await articles.slugs_taken(base, exclude_id=exclude_article_id)
    if base not in taken:
        return base
    suffix = 1
    while f"{base}-{suffix}" in taken:
        suffix += 1
    return f"{base}-{suffix}"


def _is_slug_conflict(exc: IntegrityError) -> bool:
    # PostgreSQL names the index (ix_articles_slug), SQLite the column.
    return "slug" in str(exc.orig)


def _slug_exhausted(title: str) -> ConflictError:
    logger.warning("No free slug for %r after %d attempts", title, _SLUG_ATTEMPTS)
    return ConflictError("slug", "could not be assigned, please retry")


async def _insert_with_free_slug(
    db: AsyncSession, articles: ArticleRepository, author_id: int, data: NewArticle
) -> Article:
    """
    Insert a new article under a slug nobody else holds.

    The unique index on ``articles.slug`` is the final arbiter: a flush
    that loses a race is rolled back to its savepoint and retried with a
    freshly computed slug.
    """
    for _ in range(_SLUG_ATTEMPTS):
        slug = await assign_slug(articles, data.title)
        article = Article(
            slug=slug,
            title=data.title,
            description=data.description,
            body=data.body,
            author_id=author_id,
        )
        try:
            async with db.begin_nested():
                await articles.add(article)
        except IntegrityError as exc:
            if not _is_slug_conflict(exc):
                raise
            logger.info("Slug %s was taken concurrently, retrying", slug)
            continue
        return article
    raise _slug_exhausted(data.title)


async def _rename_with_free_slug(
    db: AsyncSession, articles: ArticleRepository, article_id: int, title: str
) -> str:
    """Move the article to a slug derived from *title*; same retry rule as inserts."""
    for _ in range(_SLUG_ATTEMPTS):
        slug = await assign_slug(articles, title, exclude_article_id=article_id)
        try:
            async with db.begin_nested():
                await articles.set_slug(article_id, slug)
        except IntegrityError as exc:
            if not _is_slug_conflict(exc):
                raise
            logger.info("Slug %s was taken concurrently, retrying", slug)
            continue
        return slug
    raise _slug_exhausted(title)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

async def _get_article_or_404(articles: ArticleRepository, slug: str) -> Article:
    article = await articles.get_by_slug(slug)
    if article is None:
        raise NotFoundError("article")
    return article


def _check_owner(article: Article, viewer_id: int, action: str) -> None:
    if article.author_id != viewer_id:
        raise ForbiddenError("article", f"you can only {action} your own articles")


async def _article_view(db: AsyncSession, article: Article, viewer_id: int | None) -> dict:
    return await enrich_single_article(
        FavoriteRepository(db), FollowRepository(db), article, viewer_id
    )


async def _page_view(db: AsyncSession, articles: list[Article], viewer_id: int | None) -> dict:
    return await enrich_article_list(
        FavoriteRepository(db), FollowRepository(db), articles, viewer_id
    )


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------

async def resolve_filter(
    db: AsyncSession,
    tag: str | None = None,
    author: str | None = None,
    favorited: str | None = None,
) -> ArticleFilter | None:
    """
    Resolve the optional ``tag`` / ``author`` / ``favorited`` names into ids.

    Returns None when any supplied name does not exist, meaning the
    result is known to be empty.
    """
    users = UserRepository(db)
    author_id = favorited_by = tag_id = None

    if author is not None:
        user = await users.get_by_username(author)
        if user is None:
            return None
        author_id = user.id
    if favorited is not None:
        user = await users.get_by_username(favorited)
        if user is None:
            return None
        favorited_by = user.id
    if tag is not None:
        found = await TagRepository(db).get_by_name(tag)
        if found is None:
            return None
        tag_id = found.id

    return ArticleFilter(author_id=author_id, favorited_by_user_id=favorited_by, tag_id=tag_id)


async def list_articles(
    db: AsyncSession,
    viewer_id: int | None = None,
    tag: str | None = None,
    author: str | None = None,
    favorited: str | None = None,
    limit: int = 20,
    offset: int = 0,
) -> dict:
    """Return ``{"articles": [...], "articlesCount": n}``, newest first."""
    filters = await resolve_filter(db, tag=tag, author=author, favorited=favorited)
    if filters is None:
        return {"articles": [], "articlesCount": 0}
    articles = await ArticleRepository(db).list_page(filters, limit, offset)
    return await _page_view(db, articles, viewer_id)


async def feed_articles(db: AsyncSession, viewer_id: int, limit: int = 20, offset: int = 0) -> dict:
    """Articles by authors the viewer follows, newest first."""
    followed = await FollowRepository(db).followed_ids(viewer_id)
    if not followed:
        return {"articles": [], "articlesCount": 0}
    filters = ArticleFilter(author_ids=frozenset(followed))
    articles = await ArticleRepository(db).list_page(filters, limit, offset)
    return await _page_view(db, articles, viewer_id)


# ---------------------------------------------------------------------------
# Single article
# ---------------------------------------------------------------------------

async def get_article(db: AsyncSession, slug: str, viewer_id: int | None = None) -> dict:
    article = await _get_article_or_404(ArticleRepository(db), slug)
    return await _article_view(db, article, viewer_id)


async def create_article(db: AsyncSession, author_id: int, data: NewArticle) -> dict:
    """Create an article with its tag links in the current transaction."""
    articles = ArticleRepository(db)
    article = await _insert_with_free_slug(db, articles, author_id, data)
    await tag_service.reconcile_tags(db, article.id, data.tag_list or [])

    logger.info("Article %s created by user %s", article.slug, author_id)
    return await _article_view(db, await articles.get(article.id), author_id)


async def update_article(db: AsyncSession, slug: str, viewer_id: int, data: UpdateArticle) -> dict:
    """
    Update the fields present in *data*.

    The slug is regenerated only when the title actually changes, and the
    tag set is replaced only when ``tagList`` is supplied.
    """
    articles = ArticleRepository(db)
    article = await _get_article_or_404(articles, slug)
    _check_owner(article, viewer_id, "update")

    changes = data.model_dump(exclude_unset=True, exclude={"tag_list"})
    changes = {field: value for field, value in changes.items() if value is not None}

    if "title" in changes and changes["title"] != article.title:
        new_slug = await _rename_with_free_slug(db, articles, article.id, changes["title"])
        set_committed_value(article, "slug", new_slug)
    for field, value in changes.items():
        setattr(article, field, value)
    if changes or data.tag_list is not None:
        article.updated_at = utcnow()
    await db.flush()

    await tag_service.reconcile_tags(db, article.id, data.tag_list)
    return await _article_view(db, await articles.get(article.id), viewer_id)


async def delete_article(db: AsyncSession, slug: str, viewer_id: int) -> None:
    articles = ArticleRepository(db)
    article = await _get_article_or_404(articles, slug)
    _check_owner(article, viewer_id, "delete")
    await articles.delete(article.id)
    logger.info("Article %s deleted by user %s", slug, viewer_id)


# ---------------------------------------------------------------------------
# Favorites
# ---------------------------------------------------------------------------

async def favorite_article(db: AsyncSession, slug: str, viewer_id: int) -> dict:
    """Favorite the article; repeating the call does not count twice."""
    article = await _get_article_or_404(ArticleRepository(db), slug)
    await FavoriteRepository(db).add(viewer_id, article.id)
    return await _article_view(db, article, viewer_id)


async def unfavorite_article(db: AsyncSession, slug: str, viewer_id: int) -> dict:
    """Remove the viewer's favorite; a no-op when there is none."""
    article = await _get_article_or_404(ArticleRepository(db), slug)
    await FavoriteRepository(db).remove(viewer_id, article.id)
    return await _article_view(db, article, viewer_id)
