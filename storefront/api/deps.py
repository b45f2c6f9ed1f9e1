# storefront/api/deps.py
from functools import lru_cache

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.config import settings
from storefront.db.session_async import get_async_db
from storefront.services.auth_service import Principal, verify_session
from storefront.services.exceptions import AuthorizationError
from storefront.services.payment_providers import GatewayConfig, PaymentGateway
from storefront.services.payment_providers.braintree import BraintreeGateway


oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl=f"{settings.API_V1_STR}/auth/login",
    auto_error=False,
)


async def get_current_principal(
    db: AsyncSession = Depends(get_async_db),
    token: str | None = Depends(oauth2_scheme),
) -> Principal:
    return await verify_session(db, token)


def require_admin(principal: Principal = Depends(get_current_principal)) -> Principal:
    if not principal.is_admin:
        raise AuthorizationError("Admin access required")
    return principal


@lru_cache
def get_gateway_config() -> GatewayConfig:
    return GatewayConfig.from_settings(settings)


def get_payment_gateway(config: GatewayConfig = Depends(get_gateway_config)) -> PaymentGateway:
    return BraintreeGateway(config)
