"""
User service: registration, login and the current user's own record.

Uniqueness of email and username is checked up front so the client gets a
field-scoped message; the database unique constraints remain the final
word, and an ``IntegrityError`` from a concurrent registration is mapped
to the same conflict.
"""
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from conduit.exceptions import ConflictError, NotFoundError, UnauthorizedError
from conduit.models import User
from conduit.repositories import UserRepository
from conduit.schemas import LoginUser, NewUser, UpdateUser
from conduit.security import create_access_token, hash_password, verify_password

logger = logging.getLogger(__name__)

_TAKEN = "has already been taken"


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------

def _user_to_dict(user: User) -> dict:
    """Serialise *user* for its owner, with a fresh access token."""
    return {
        "email": user.email,
        "token": create_access_token(user),
        "username": user.username,
        "bio": user.bio,
        "image": user.image,
    }


async def _flush_or_conflict(users: UserRepository, user: User) -> None:
    try:
        await users.add(user)
    except IntegrityError:
        raise ConflictError("user", _TAKEN)


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def register(db: AsyncSession, data: NewUser) -> dict:
    users = UserRepository(db)
    taken = await users.find_taken_field(email=data.email, username=data.username)
    if taken:
        raise ConflictError(taken, _TAKEN)

    user = User(
        username=data.username,
        email=data.email,
        password_hash=hash_password(data.password),
    )
    await _flush_or_conflict(users, user)
    logger.info("Registered user %s (id=%s)", user.username, user.id)
    return _user_to_dict(user)


async def login(db: AsyncSession, data: LoginUser) -> dict:
    """
    Authenticate by email and password.

    Unknown email and wrong password produce the same error so the
    response does not reveal which accounts exist.
    """
    user = await UserRepository(db).get_by_email(data.email)
    if user is None or not verify_password(data.password, user.password_hash):
        raise UnauthorizedError("credentials", "email or password is invalid")
    return _user_to_dict(user)


async def get_current_user(db: AsyncSession, user_id: int) -> dict:
    user = await UserRepository(db).get(user_id)
    if user is None:
        raise NotFoundError("user")
    return _user_to_dict(user)


async def update_current_user(db: AsyncSession, user_id: int, data: UpdateUser) -> dict:
    """
    Apply the fields explicitly present in *data* to the viewer's record.

    ``bio`` and ``image`` may be cleared with null; ``email``,
    ``username`` and ``password`` ignore null.
    """
    users = UserRepository(db)
    user = await users.get(user_id)
    if user is None:
        raise NotFoundError("user")

    changes = data.model_dump(exclude_unset=True)
    for field in ("email", "username", "password"):
        if changes.get(field) is None:
            changes.pop(field, None)

    taken = await users.find_taken_field(
        email=changes.get("email"), username=changes.get("username"), exclude_id=user.id
    )
    if taken:
        raise ConflictError(taken, _TAKEN)

    password = changes.pop("password", None)
    if password is not None:
        user.password_hash = hash_password(password)
    for field, value in changes.items():
        setattr(user, field, value)

    await _flush_or_conflict(users, user)
    return _user_to_dict(user)
