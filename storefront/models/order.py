import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, DateTime, Enum, ForeignKey, Numeric, String, Text, event, func, inspect
from sqlalchemy.orm import Mapped, mapped_column, relationship

from storefront.db.base import Base
from storefront.db.types import GUID
from storefront.domain.enums import CheckoutAttemptStatus, OrderStatus


# Only these columns may change once an order row exists.
ORDER_MUTABLE_COLUMNS = frozenset({"status", "updated_at"})


class ImmutableOrderError(Exception):
    """A flush tried to rewrite a recorded order or one of its lines."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Order(Base):
    __tablename__ = "orders"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    # Buyer reference survives as NULL if the user is deleted
    buyer_id: Mapped[uuid.UUID | None] = mapped_column(
        GUID(), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )

    status: Mapped[OrderStatus] = mapped_column(
        Enum(OrderStatus), default=OrderStatus.not_processed, nullable=False
    )
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    total_amount: Mapped[float] = mapped_column(Numeric(12, 2), nullable=False)

    # Gateway outcome captured at creation: success flag, transaction id, status, raw reply.
    payment: Mapped[dict] = mapped_column(JSON, nullable=False)
    transaction_id: Mapped[str | None] = mapped_column(String(140), nullable=True, index=True)
    idempotency_key: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)

    # Python-side default keeps sub-second precision for newest-first listings.
    created_at = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )
    updated_at = mapped_column(DateTime(timezone=True), onupdate=func.now())

    buyer = relationship("User", lazy="raise")
    lines: Mapped[list["OrderLine"]] = relationship(
        "OrderLine",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderLine.position",
    )

    @property
    def buyer_name(self) -> str | None:
        return self.buyer.name if self.buyer is not None else None


class OrderLine(Base):
    """Snapshot of a product as it was sold.

    Keeps name, description and price so that later catalog edits or
    deletions do not rewrite order history.
    """

    __tablename__ = "order_lines"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    order_id: Mapped[uuid.UUID] = mapped_column(
        GUID(), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(nullable=False)
    product_id: Mapped[uuid.UUID | None] = mapped_column(
        GUID(), ForeignKey("products.id", ondelete="SET NULL"), nullable=True
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    slug: Mapped[str | None] = mapped_column(String(220), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    price: Mapped[float] = mapped_column(Numeric(10, 2), nullable=False)

    order = relationship("Order", back_populates="lines")


class CheckoutAttempt(Base):
    """Claim on an idempotency key, written before the gateway is contacted."""

    __tablename__ = "checkout_attempts"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    idempotency_key: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    user_id: Mapped[uuid.UUID] = mapped_column(
        GUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status: Mapped[CheckoutAttemptStatus] = mapped_column(
        Enum(CheckoutAttemptStatus), default=CheckoutAttemptStatus.pending, nullable=False
    )
    amount: Mapped[float] = mapped_column(Numeric(12, 2), nullable=False)
    order_id: Mapped[uuid.UUID | None] = mapped_column(
        GUID(), ForeignKey("orders.id", ondelete="SET NULL"), nullable=True
    )
    transaction_id: Mapped[str | None] = mapped_column(String(140), nullable=True)
    detail: Mapped[str | None] = mapped_column(String(500), nullable=True)

    created_at = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = mapped_column(DateTime(timezone=True), onupdate=func.now())


def _changed_columns(target) -> set[str]:
    state = inspect(target)
    return {
        attr.key
        for attr in state.mapper.column_attrs
        if state.attrs[attr.key].history.has_changes()
    }


@event.listens_for(Order, "before_update")
def _guard_order_immutability(mapper, connection, target: Order) -> None:
    frozen = _changed_columns(target) - ORDER_MUTABLE_COLUMNS
    if frozen:
        raise ImmutableOrderError(f"Order fields are immutable after creation: {', '.join(sorted(frozen))}")


@event.listens_for(OrderLine, "before_update")
def _guard_order_line_immutability(mapper, connection, target: OrderLine) -> None:
    if _changed_columns(target):
        raise ImmutableOrderError("Order lines are immutable after creation")
