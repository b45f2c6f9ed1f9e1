# storefront/domain/enums.py
import enum


class UserRole(str, enum.Enum):
    user = "user"
    admin = "admin"


class OrderStatus(str, enum.Enum):
    not_processed = "Not Processed"
    processing = "Processing"
    shipped = "Shipped"
    delivered = "Delivered"
    cancelled = "Cancelled"


class CheckoutAttemptStatus(str, enum.Enum):
    pending = "pending"
    succeeded = "succeeded"
    declined = "declined"
    unknown = "unknown"
    inconsistent = "inconsistent"
