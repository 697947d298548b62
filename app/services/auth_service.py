from datetime import datetime, timedelta
from typing import Optional

import jwt
from passlib.context import CryptContext
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings
from app.core.exceptions import ConflictError
from app.models.user import User, Role

pwd_context = CryptContext(
    schemes=["argon2"],
    deprecated="auto",
)


def get_password_hash(password: str) -> str:
    """Hash password using argon2."""
    if not isinstance(password, str):
        password = str(password)
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password with argon2."""
    if not isinstance(plain_password, str):
        plain_password = str(plain_password)
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # malformed or unknown hash
        return False


async def get_user_by_id(session: AsyncSession, user_id: int) -> Optional[User]:
    return await session.get(User, user_id)


async def get_user_by_login(session: AsyncSession, login: str) -> Optional[User]:
    """Look a user up by username or email."""
    q = await session.execute(select(User).where(or_(User.username == login, User.email == login)))
    return q.scalars().first()


async def create_user(
    session: AsyncSession,
    username: str,
    email: str,
    password: str,
    role: Role = Role.HSE_OFFICER,
    full_name: Optional[str] = None,
) -> User:
    existing = await session.execute(
        select(User.id).where(or_(User.username == username, User.email == email))
    )
    if existing.first() is not None:
        raise ConflictError("Username or email already exists")

    user = User(
        username=username,
        email=email,
        hashed_password=get_password_hash(password),
        role=role,
        full_name=full_name,
    )
    session.add(user)
    try:
        await session.commit()
    except IntegrityError as exc:
        # lost a race with a concurrent registration
        await session.rollback()
        raise ConflictError("Username or email already exists") from exc
    await session.refresh(user)
    return user


async def authenticate_user(session: AsyncSession, login: str, password: str) -> Optional[User]:
    user = await get_user_by_login(session, login)
    if not user:
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user


def create_access_token(user: User, settings: Settings, expires_delta: Optional[timedelta] = None) -> str:
    now = datetime.utcnow()
    exp = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    payload = {
        "sub": str(user.id),
        "username": user.username,
        "role": Role(user.role).value,
        "exp": exp,
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str, settings: Settings) -> dict:
    """Raises jwt.PyJWTError (including ExpiredSignatureError) on a bad token."""
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
