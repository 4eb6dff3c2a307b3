from enum import Enum
from pydantic import BaseModel, ConfigDict, Field


class PaymentMethod(str, Enum):
    MANUAL_RECEIPT = "manual_receipt"
    GATEWAY = "gateway"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class CreateOrderRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    application_id: str = Field(..., alias="applicationId", description="Application code or id")


class VerifyPaymentRequest(BaseModel):
    razorpay_order_id: str = Field(..., min_length=1)
    razorpay_payment_id: str = Field(..., min_length=1)
    razorpay_signature: str = Field(..., min_length=1)
