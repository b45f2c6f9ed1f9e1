from pydantic import BaseModel


class Envelope(BaseModel):
    """Shape shared by every response: ``{success, message, <payload>}``."""

    success: bool = True
    message: str = ""
