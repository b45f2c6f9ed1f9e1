# storefront/models/cart.py
import uuid

from sqlalchemy import DateTime, ForeignKey, Index, Integer, func
from sqlalchemy.orm import Mapped, mapped_column

from storefront.db.base import Base
from storefront.db.types import GUID


class CartItem(Base):
    """One occurrence of a product in a user's cart.

    The cart is a multiset: adding the same product twice yields two rows.
    The integer key preserves insertion order, which decides which
    occurrence a removal drops.
    """

    __tablename__ = "cart_items"
    __table_args__ = (
        Index("ix_cart_items_user_id_id", "user_id", "id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[uuid.UUID] = mapped_column(
        GUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    product_id: Mapped[uuid.UUID] = mapped_column(
        GUID(), ForeignKey("products.id", ondelete="CASCADE"), nullable=False
    )

    created_at = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
