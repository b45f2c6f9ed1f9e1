import uuid

from sqlalchemy import DateTime, LargeBinary, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, deferred, mapped_column

from storefront.db.base import Base
from storefront.db.types import GUID


class Product(Base):
    __tablename__ = "products"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    slug: Mapped[str] = mapped_column(String(220), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    price: Mapped[float] = mapped_column(Numeric(10, 2), nullable=False)

    # Never loaded unless explicitly requested; order and cart views skip it.
    photo: Mapped[bytes | None] = deferred(mapped_column(LargeBinary, nullable=True))
    photo_content_type: Mapped[str | None] = mapped_column(String(100), nullable=True)

    created_at = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = mapped_column(DateTime(timezone=True), onupdate=func.now())
