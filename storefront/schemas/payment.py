from pydantic import BaseModel, ConfigDict, Field

from storefront.schemas.common import Envelope


class PaymentRequest(BaseModel):
    """Checkout submission.

    Only the nonce is read. Any cart or price fields a client sends are
    dropped: totals are always derived from the server cart and catalog.
    """

    nonce: str = Field(..., min_length=1, max_length=512)

    model_config = ConfigDict(extra="ignore")


class ClientTokenEnvelope(Envelope):
    client_token: str
