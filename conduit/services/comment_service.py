"""
Comment service: comments on articles.

Comments are created by any authenticated user and deleted only by their
author; there is no edit operation.
"""
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from conduit.exceptions import ForbiddenError, NotFoundError
from conduit.models import Comment
from conduit.repositories import ArticleRepository, CommentRepository, FollowRepository
from conduit.services.enrichment import enrich_comment_list

logger = logging.getLogger(__name__)


async def _get_article_id(db: AsyncSession, slug: str) -> int:
    article = await ArticleRepository(db).get_by_slug(slug)
    if article is None:
        raise NotFoundError("article")
    return article.id


async def list_comments(db: AsyncSession, slug: str, viewer_id: int | None = None) -> list[dict]:
    """Return the article's comments, newest first."""
    article_id = await _get_article_id(db, slug)
    comments = await CommentRepository(db).list_for_article(article_id)
    return await enrich_comment_list(FollowRepository(db), comments, viewer_id)


async def add_comment(db: AsyncSession, slug: str, author_id: int, body: str) -> dict:
    article_id = await _get_article_id(db, slug)
    comments = CommentRepository(db)
    comment = await comments.add(Comment(body=body, article_id=article_id, author_id=author_id))
    comment = await comments.get(comment.id)
    logger.info("Comment %s added to %s by user %s", comment.id, slug, author_id)
    # The author is the viewer here, so following is always false.
    (view,) = await enrich_comment_list(FollowRepository(db), [comment], author_id)
    return view


async def delete_comment(db: AsyncSession, slug: str, comment_id: int, viewer_id: int) -> None:
    """
    Delete a comment owned by the viewer.

    A comment that exists but belongs to another article is reported as
    not found.
    """
    article_id = await _get_article_id(db, slug)
    comments = CommentRepository(db)
    comment = await comments.get(comment_id)
    if comment is None or comment.article_id != article_id:
        raise NotFoundError("comment")
    if comment.author_id != viewer_id:
        raise ForbiddenError("comment", "you can only delete your own comments")
    await comments.delete(comment_id)
    logger.info("Comment %s deleted by user %s", comment_id, viewer_id)
