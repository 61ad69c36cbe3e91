"""
Storage access layer: one repository per table, each bound to the
request's AsyncSession.

Design notes
------------
- Repositories expose typed query methods only; they never commit.  The
  transaction boundary is owned by the ``get_db`` dependency.
- Conflict-tolerant writes (tags, follows, favorites) use the dialect's
  ``INSERT ... ON CONFLICT DO NOTHING`` so two requests racing on the same
  key both succeed without a check-then-insert window.
- Relationship loading is always explicit: ``joinedload`` for the
  many-to-one author and ``selectinload`` for the many-to-many tags.
- The batch readers (``counts_for``, ``favorited_ids``, ``followed_ids``)
  take a collection of ids and issue one statement regardless of its size.
"""
from collections.abc import Iterable
from dataclasses import dataclass

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload, selectinload

from conduit.models import Article, Comment, Favorite, Follow, Tag, User, articles_to_tags

_DIALECT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _insert_ignoring_conflicts(db: AsyncSession, table):
    """Return an INSERT for *table* that silently skips duplicate keys."""
    dialect = db.get_bind().dialect.name
    try:
        insert = _DIALECT_INSERTS[dialect]
    except KeyError:
        supported = ", ".join(sorted(_DIALECT_INSERTS))
        raise ValueError(
            f"unsupported database dialect {dialect!r}; expected one of: {supported}"
        ) from None
    return insert(table).on_conflict_do_nothing()


# ---------------------------------------------------------------------------
# Filters
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ArticleFilter:
    """
    Resolved listing filter.  Every field that is set narrows the result;
    unset fields do not participate.

    ``author_ids`` is used by the feed: articles whose author is any of
    the given ids.
    """

    author_id: int | None = None
    favorited_by_user_id: int | None = None
    tag_id: int | None = None
    author_ids: frozenset[int] | None = None


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

class UserRepository:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get(self, user_id: int) -> User | None:
        return await self.db.get(User, user_id)

    async def get_by_username(self, username: str) -> User | None:
        result = await self.db.execute(select(User).where(User.username == username))
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> User | None:
        result = await self.db.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def find_taken_field(
        self,
        email: str | None = None,
        username: str | None = None,
        exclude_id: int | None = None,
    ) -> str | None:
        """
        Return ``"email"`` or ``"username"`` when another user already
        holds that value, else None.
        """
        conditions = []
        if email is not None:
            conditions.append(User.email == email)
        if username is not None:
            conditions.append(User.username == username)
        if not conditions:
            return None
        q = select(User.email, User.username).where(or_(*conditions))
        if exclude_id is not None:
            q = q.where(User.id != exclude_id)
        for row in (await self.db.execute(q)).all():
            if email is not None and row.email == email:
                return "email"
            if username is not None and row.username == username:
                return "username"
        return None

    async def add(self, user: User) -> User:
        self.db.add(user)
        await self.db.flush()
        return user


# ---------------------------------------------------------------------------
# Follows
# ---------------------------------------------------------------------------

class FollowRepository:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def is_following(self, follower_id: int, followed_id: int) -> bool:
        q = select(Follow.follower_id).where(
            Follow.follower_id == follower_id, Follow.followed_id == followed_id
        )
        return (await self.db.execute(q)).first() is not None

    async def followed_ids(
        self, follower_id: int, among: Iterable[int] | None = None
    ) -> set[int]:
        """
        Ids of the users *follower_id* follows, optionally restricted to
        *among* (an empty *among* short-circuits without a query).
        """
        q = select(Follow.followed_id).where(Follow.follower_id == follower_id)
        if among is not None:
            among = set(among)
            if not among:
                return set()
            q = q.where(Follow.followed_id.in_(among))
        return set((await self.db.execute(q)).scalars().all())

    async def add(self, follower_id: int, followed_id: int) -> None:
        stmt = _insert_ignoring_conflicts(self.db, Follow.__table__).values(
            follower_id=follower_id, followed_id=followed_id
        )
        await self.db.execute(stmt)

    async def remove(self, follower_id: int, followed_id: int) -> None:
        await self.db.execute(
            delete(Follow).where(
                Follow.follower_id == follower_id, Follow.followed_id == followed_id
            )
        )


# ---------------------------------------------------------------------------
# Favorites
# ---------------------------------------------------------------------------

class FavoriteRepository:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def counts_for(self, article_ids: Iterable[int]) -> dict[int, int]:
        """Favorite counts grouped by article; articles without favorites are absent."""
        article_ids = set(article_ids)
        if not article_ids:
            return {}
        q = (
            select(Favorite.article_id, func.count())
            .where(Favorite.article_id.in_(article_ids))
            .group_by(Favorite.article_id)
        )
        return {article_id: count for article_id, count in (await self.db.execute(q)).all()}

    async def favorited_ids(self, user_id: int, article_ids: Iterable[int]) -> set[int]:
        """The subset of *article_ids* that *user_id* has favorited."""
        article_ids = set(article_ids)
        if not article_ids:
            return set()
        q = select(Favorite.article_id).where(
            Favorite.user_id == user_id, Favorite.article_id.in_(article_ids)
        )
        return set((await self.db.execute(q)).scalars().all())

    async def add(self, user_id: int, article_id: int) -> None:
        stmt = _insert_ignoring_conflicts(self.db, Favorite.__table__).values(
            user_id=user_id, article_id=article_id
        )
        await self.db.execute(stmt)

    async def remove(self, user_id: int, article_id: int) -> None:
        await self.db.execute(
            delete(Favorite).where(Favorite.user_id == user_id, Favorite.article_id == article_id)
        )


# ---------------------------------------------------------------------------
# Tags
# ---------------------------------------------------------------------------

class TagRepository:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def all_names(self) -> list[str]:
        result = await self.db.execute(select(Tag.name).order_by(Tag.name))
        return list(result.scalars().all())

    async def get_by_name(self, name: str) -> Tag | None:
        result = await self.db.execute(select(Tag).where(Tag.name == name))
        return result.scalar_one_or_none()

    async def ensure(self, names: Iterable[str]) -> dict[str, int]:
        """
        Make sure a tag row exists for every name and return ``{name: id}``.

        A single insert-ignore followed by one lookup: if a concurrent
        request inserted the same name first, its row is simply read back.
        """
        names = list(dict.fromkeys(names))
        if not names:
            return {}
        stmt = _insert_ignoring_conflicts(self.db, Tag.__table__).values(
            [{"name": name} for name in names]
        )
        await self.db.execute(stmt)
        result = await self.db.execute(select(Tag.name, Tag.id).where(Tag.name.in_(names)))
        return {name: tag_id for name, tag_id in result.all()}

    async def replace_links(self, article_id: int, tag_ids: Iterable[int]) -> None:
        """Unlink every tag from the article, then link exactly *tag_ids*."""
        await self.db.execute(
            delete(articles_to_tags).where(articles_to_tags.c.article_id == article_id)
        )
        rows = [{"article_id": article_id, "tag_id": tag_id} for tag_id in set(tag_ids)]
        if rows:
            await self.db.execute(articles_to_tags.insert().values(rows))


# ---------------------------------------------------------------------------
# Articles
# ---------------------------------------------------------------------------

class ArticleRepository:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    def _select_with_relations(self):
        # populate_existing refreshes instances already in the identity map,
        # so a read after a link rewrite sees the new tags.
        return (
            select(Article)
            .options(joinedload(Article.author), selectinload(Article.tags))
            .execution_options(populate_existing=True)
        )

    async def get_by_slug(self, slug: str) -> Article | None:
        result = await self.db.execute(self._select_with_relations().where(Article.slug == slug))
        return result.unique().scalar_one_or_none()

    async def get(self, article_id: int) -> Article | None:
        result = await self.db.execute(
            self._select_with_relations().where(Article.id == article_id)
        )
        return result.unique().scalar_one_or_none()

    async def slugs_taken(self, base: str, exclude_id: int | None = None) -> set[str]:
        """Existing slugs equal to *base* or of the form ``base-<suffix>``."""
        q = select(Article.slug).where(
            or_(Article.slug == base, Article.slug.like(f"{base}-%"))
        )
        if exclude_id is not None:
            q = q.where(Article.id != exclude_id)
        return set((await self.db.execute(q)).scalars().all())

    async def list_page(self, filters: ArticleFilter, limit: int, offset: int) -> list[Article]:
        """
        Return one page of articles matching *filters*, newest first.

        ``id`` breaks ties on ``created_at`` so pagination is deterministic.
        """
        q = self._select_with_relations()
        if filters.author_id is not None:
            q = q.where(Article.author_id == filters.author_id)
        if filters.author_ids is not None:
            q = q.where(Article.author_id.in_(filters.author_ids))
        if filters.favorited_by_user_id is not None:
            q = q.where(
                Article.id.in_(
                    select(Favorite.article_id).where(
                        Favorite.user_id == filters.favorited_by_user_id
                    )
                )
            )
        if filters.tag_id is not None:
            q = q.where(
                Article.id.in_(
                    select(articles_to_tags.c.article_id).where(
                        articles_to_tags.c.tag_id == filters.tag_id
                    )
                )
            )
        q = q.order_by(Article.created_at.desc(), Article.id.desc()).offset(offset).limit(limit)
        result = await self.db.execute(q)
        return list(result.unique().scalars().all())

    async def add(self, article: Article) -> Article:
        self.db.add(article)
        await self.db.flush()
        return article

    async def set_slug(self, article_id: int, slug: str) -> None:
        await self.db.execute(update(Article).where(Article.id == article_id).values(slug=slug))

    async def delete(self, article_id: int) -> None:
        """
        Delete the article together with its favorites, tag links and
        comments.  Dependents are removed explicitly so the behaviour does
        not depend on the backend enforcing ``ON DELETE CASCADE``.
        """
        await self.db.execute(delete(Favorite).where(Favorite.article_id == article_id))
        await self.db.execute(
            delete(articles_to_tags).where(articles_to_tags.c.article_id == article_id)
        )
        await self.db.execute(delete(Comment).where(Comment.article_id == article_id))
        await self.db.execute(delete(Article).where(Article.id == article_id))


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------

class CommentRepository:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get(self, comment_id: int) -> Comment | None:
        result = await self.db.execute(
            select(Comment)
            .where(Comment.id == comment_id)
            .options(joinedload(Comment.author))
            .execution_options(populate_existing=True)
        )
        return result.unique().scalar_one_or_none()

    async def list_for_article(self, article_id: int) -> list[Comment]:
        q = (
            select(Comment)
            .where(Comment.article_id == article_id)
            .options(joinedload(Comment.author))
            .order_by(Comment.created_at.desc(), Comment.id.desc())
        )
        result = await self.db.execute(q)
        return list(result.unique().scalars().all())

    async def add(self, comment: Comment) -> Comment:
        self.db.add(comment)
        await self.db.flush()
        return comment

    async def delete(self, comment_id: int) -> None:
        await self.db.execute(delete(Comment).where(Comment.id == comment_id))
