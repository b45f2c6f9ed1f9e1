from __future__ import annotations

import uuid
from dataclasses import dataclass

from jose import JWTError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.logging import security_alert
from storefront.core.security import decode_access_token, get_password_hash, verify_password
from storefront.domain.enums import UserRole
from storefront.models.user import User
from storefront.schemas.user import UserCreate
from storefront.services.exceptions import AuthenticationError, ConflictError


@dataclass(frozen=True)
class Principal:
    """Who is calling: the result of verifying a session token."""

    user_id: uuid.UUID
    role: UserRole

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.admin


async def get_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == email.lower()))
    return result.scalar_one_or_none()


async def register_user(db: AsyncSession, payload: UserCreate, *, role: UserRole = UserRole.user) -> User:
    if await get_by_email(db, payload.email):
        raise ConflictError("Email already registered")
    user = User(
        email=payload.email.lower(),
        name=payload.name,
        hashed_password=get_password_hash(payload.password),
        phone=payload.phone,
        address=payload.address,
        role=role,
    )
    db.add(user)
    await db.flush()
    await db.refresh(user)
    return user


async def authenticate(db: AsyncSession, email: str, password: str) -> User | None:
    user = await get_by_email(db, email)
    if not user or not verify_password(password, user.hashed_password):
        return None
    return user


async def verify_session(db: AsyncSession, token: str | None) -> Principal:
    """Resolve a bearer token to a principal.

    The role comes from the stored user, so a demoted admin loses access
    even while holding an older token.
    """
    if not token:
        raise AuthenticationError("Not authenticated")
    try:
        payload = decode_access_token(token)
        user_id = uuid.UUID(str(payload.get("sub")))
    except (JWTError, ValueError) as exc:
        security_alert("Session token rejected", reason=str(exc))
        raise AuthenticationError("Could not validate credentials") from exc

    role = await db.scalar(select(User.role).where(User.id == user_id))
    if role is None:
        security_alert("Session token for unknown user", user_id=str(user_id))
        raise AuthenticationError("Could not validate credentials")
    return Principal(user_id=user_id, role=role)
