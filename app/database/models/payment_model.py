from beanie import Document, PydanticObjectId
from pydantic import Field
from pymongo import ASCENDING, DESCENDING, IndexModel
from datetime import datetime
from typing import Optional

from app.schemas.payment_schema import PaymentMethod, PaymentStatus


class Payment(Document):
    """A payment towards an application.

    ``manual_receipt`` payments are created at submission from the UTR number
    and the uploaded receipt; ``gateway`` payments come from an order created
    with the payment gateway and are completed once the gateway signature
    checks out.
    """

    application_id: str = Field(..., description="Human-readable application code")
    application_ref: PydanticObjectId = Field(..., description="Application document id")
    user_id: PydanticObjectId = Field(..., description="Paying user")
    method: PaymentMethod = Field(...)
    status: PaymentStatus = Field(default=PaymentStatus.PENDING)
    amount: float = Field(..., ge=0)
    currency: str = Field(default="INR")
    utr_number: Optional[str] = None
    receipt_key: Optional[str] = Field(None, description="Storage key of the uploaded receipt")
    order_id: Optional[str] = Field(None, description="Gateway order id")
    gateway_payment_id: Optional[str] = None
    signature: Optional[str] = None
    paid_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "payments"
        indexes = [
            IndexModel([("application_ref", ASCENDING), ("created_at", DESCENDING)]),
            IndexModel([("order_id", ASCENDING)], sparse=True),
        ]
