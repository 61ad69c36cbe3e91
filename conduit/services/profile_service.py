"""
Profile service: public profiles and follow edges between users.
"""
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from conduit.exceptions import ConflictError, NotFoundError
from conduit.models import User
from conduit.repositories import FollowRepository, UserRepository
from conduit.services.enrichment import enrich_profile

logger = logging.getLogger(__name__)


async def _get_user_or_404(db: AsyncSession, username: str) -> User:
    user = await UserRepository(db).get_by_username(username)
    if user is None:
        raise NotFoundError("profile")
    return user


async def _profile_view(follows: FollowRepository, user: User, viewer_id: int | None) -> dict:
    following = False
    if viewer_id is not None and viewer_id != user.id:
        following = await follows.is_following(viewer_id, user.id)
    return enrich_profile(user, following)


async def get_profile(db: AsyncSession, username: str, viewer_id: int | None) -> dict:
    user = await _get_user_or_404(db, username)
    return await _profile_view(FollowRepository(db), user, viewer_id)


async def follow(db: AsyncSession, username: str, viewer_id: int) -> dict:
    """Follow *username*; following an already-followed user is a no-op."""
    user = await _get_user_or_404(db, username)
    if user.id == viewer_id:
        raise ConflictError("profile", "cannot follow yourself", status_code=422)

    follows = FollowRepository(db)
    await follows.add(viewer_id, user.id)
    logger.info("User %s followed %s", viewer_id, user.id)
    return await _profile_view(follows, user, viewer_id)


async def unfollow(db: AsyncSession, username: str, viewer_id: int) -> dict:
    """Unfollow *username*; unfollowing a user not followed is a no-op."""
    user = await _get_user_or_404(db, username)
    if user.id == viewer_id:
        raise ConflictError("profile", "cannot unfollow yourself", status_code=422)

    follows = FollowRepository(db)
    await follows.remove(viewer_id, user.id)
    logger.info("User %s unfollowed %s", viewer_id, user.id)
    return await _profile_view(follows, user, viewer_id)
