from uuid import UUID

from pydantic import BaseModel, ConfigDict

from storefront.schemas.common import Envelope


class ProductRead(BaseModel):
    id: UUID
    name: str
    slug: str
    description: str | None
    price: float
    has_photo: bool = False

    model_config = ConfigDict(from_attributes=True)


class ProductEnvelope(Envelope):
    product: ProductRead
