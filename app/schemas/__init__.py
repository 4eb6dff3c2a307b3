from app.schemas.user_schemas import UserCreate, UserUpdate, UserResponse, Token, RefreshRequest
from app.schemas.application_schema import (
    DocumentType,
    ApplicationStatus,
    StorageFolder,
    UserRole,
    NotificationType,
    ReviewRequest,
)
from app.schemas.payment_schema import PaymentMethod, PaymentStatus, CreateOrderRequest, VerifyPaymentRequest
