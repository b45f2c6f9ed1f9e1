# storefront/schemas/user.py
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from storefront.domain.enums import UserRole
from storefront.schemas.common import Envelope


class UserCreate(BaseModel):
    email: EmailStr
    name: str = Field(..., min_length=1, max_length=200)
    password: str = Field(..., min_length=6)
    phone: str | None = Field(default=None, max_length=40)
    address: str | None = Field(default=None, max_length=500)


class UserRead(BaseModel):
    id: UUID
    email: EmailStr
    name: str
    role: UserRole

    model_config = ConfigDict(from_attributes=True)


class UserEnvelope(Envelope):
    user: UserRead


class TokenEnvelope(Envelope):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserRead
