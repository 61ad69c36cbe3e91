"""
Tag service: the global tag list and per-article tag reconciliation.

Tags are created lazily the first time an article names them and are never
deleted when the last article drops them.  Names are case-sensitive and
stored exactly as given.
"""
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from conduit.cache import cache
from conduit.repositories import TagRepository

logger = logging.getLogger(__name__)


async def list_tags(db: AsyncSession) -> list[str]:
    """Return every tag name, sorted ascending, via the Redis cache."""
    cached = await cache.get_tags()
    if cached is not None:
        return cached

    names = await TagRepository(db).all_names()
    await cache.set_tags(names)
    return names


async def reconcile_tags(
    db: AsyncSession, article_id: int, tag_names: list[str] | None
) -> None:
    """
    Make *tag_names* the exact tag set of *article_id*.

    ``None`` leaves the current links untouched; an empty list removes
    them all.  Duplicate names collapse to a single link.  Runs inside the
    caller's transaction, so a failure leaves no partial link state.
    """
    if tag_names is None:
        return

    tags = TagRepository(db)
    names = list(dict.fromkeys(tag_names))
    ids = await tags.ensure(names)
    await tags.replace_links(article_id, ids.values())
    logger.debug("Article %s linked to tags %s", article_id, names)

    if names:
        await cache.invalidate_tags()
