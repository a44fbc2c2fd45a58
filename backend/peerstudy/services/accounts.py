"""Accounts: registration, credential checks and the subject profile."""

import asyncio
import logging

import bcrypt

from peerstudy.config import get_settings
from peerstudy.db.models import User
from peerstudy.exceptions import AuthenticationRequired, Conflict, NotFound
from peerstudy.repositories import UnitOfWork
from peerstudy.schemas.user import RegisterRequest, SubjectScore, SubjectsUpdate, UserProfile

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes and newer releases reject longer input
_BCRYPT_MAX_BYTES = 72


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=get_settings().bcrypt_rounds)
    return bcrypt.hashpw(_password_bytes(password), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(_password_bytes(password), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


async def register(uow: UnitOfWork, data: RegisterRequest) -> User:
    email = data.email.lower()
    if await uow.users.get_by_email(email) is not None:
        raise Conflict("Email already registered", context={"email": email})

    password_hash = await asyncio.to_thread(hash_password, data.password)
    user = await uow.users.add(
        name=data.name,
        branch=data.branch,
        email=email,
        password_hash=password_hash,
        goals=data.goals,
    )
    await uow.commit()
    logger.info("Registered user %s", user.id)
    return user


async def authenticate(uow: UnitOfWork, email: str, password: str) -> User:
    """Return the user for valid credentials. Unknown email and wrong password look the same."""
    user = await uow.users.get_by_email(email.lower())
    if user is None or not await asyncio.to_thread(verify_password, password, user.password_hash):
        raise AuthenticationRequired("Invalid credentials")
    return user


async def get_profile(uow: UnitOfWork, user_id: int) -> UserProfile:
    user = await uow.users.get(user_id)
    if user is None:
        raise NotFound("User", user_id)
    subjects = await uow.users.get_subjects(user_id)
    return UserProfile(
        id=user.id,
        name=user.name,
        branch=user.branch,
        email=user.email,
        goals=user.goals,
        group_preference=user.group_preference,
        group_id=user.group_id,
        subjects=[SubjectScore(subject_name=s.subject_name, score=s.score) for s in subjects],
    )


async def save_subjects(uow: UnitOfWork, user_id: int, data: SubjectsUpdate) -> UserProfile:
    """Replace the subject set and group preference together."""
    if await uow.users.get(user_id) is None:
        raise NotFound("User", user_id)
    await uow.users.replace_subjects(user_id, data.subjects)
    await uow.users.set_group_preference(user_id, data.group_preference)
    await uow.commit()
    return await get_profile(uow, user_id)
