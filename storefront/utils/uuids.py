# storefront/utils/uuids.py
import uuid

from storefront.services.exceptions import ValidationError


def parse_uuid(value) -> uuid.UUID | None:
    """Coerce ``value`` to a UUID, or ``None`` when it is missing or malformed."""
    if value is None:
        return None
    if isinstance(value, uuid.UUID):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return uuid.UUID(text)
    except ValueError:
        return None


def require_uuid(value, field: str) -> uuid.UUID:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field} is required")
    parsed = parse_uuid(value)
    if parsed is None:
        raise ValidationError(f"Invalid UUID for {field}")
    return parsed
