from __future__ import annotations

from fastapi import APIRouter, Depends, Request, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.config import settings
from storefront.core.logging import get_logger, security_alert
from storefront.core.security import create_access_token
from storefront.db.session_async import commit, get_async_db, rollback
from storefront.schemas.user import TokenEnvelope, UserCreate, UserEnvelope, UserRead
from storefront.services import auth_service
from storefront.services.exceptions import AuthenticationError

router = APIRouter(prefix="/auth", tags=["auth"])

auth_logger = get_logger("storefront.auth")


def _client_ip(request: Request | None) -> str | None:
    if request is None:
        return None
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    client = request.client
    return client.host if client else None


@router.post("/register", response_model=UserEnvelope, status_code=status.HTTP_201_CREATED)
async def register(payload: UserCreate, db: AsyncSession = Depends(get_async_db)):
    try:
        user = await auth_service.register_user(db, payload)
        await commit(db)
    except Exception:
        await rollback(db)
        raise
    auth_logger.info("User registered", extra={"user_id": str(user.id)})
    return UserEnvelope(success=True, message="User registered successfully", user=UserRead.model_validate(user))


@router.post("/login", response_model=TokenEnvelope)
async def login(
    request: Request,
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: AsyncSession = Depends(get_async_db),
):
    user = await auth_service.authenticate(db, form_data.username, form_data.password)
    if not user:
        security_alert(
            "Failed login attempt",
            email=form_data.username,
            client_ip=_client_ip(request),
        )
        raise AuthenticationError("Incorrect email or password")

    auth_logger.info(
        "User authenticated",
        extra={"user_id": str(user.id), "client_ip": _client_ip(request)},
    )
    return TokenEnvelope(
        success=True,
        message="Login successful",
        access_token=create_access_token(subject=user.id),
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        user=UserRead.model_validate(user),
    )
