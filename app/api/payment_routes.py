from fastapi import APIRouter, Depends, status
from typing import Any, Dict

from app.core.auth_dependencies import get_current_user
from app.helpers.response_builder import build_payment_response
from app.schemas.payment_schema import CreateOrderRequest, VerifyPaymentRequest
from app.services.payment_service import PaymentService, get_payment_service

router = APIRouter(prefix="/payments", tags=["Payments"])


# Creates a gateway order for an application with a generated certificate
@router.post("/create-order", response_model=Dict[str, Any], status_code=status.HTTP_201_CREATED)
async def create_order(
    payload: CreateOrderRequest,
    current_user: Dict = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    order = await service.create_order(payload.application_id, current_user)
    order["payment"] = build_payment_response(order["payment"])
    return order


# Verifies the checkout signature and completes the payment
@router.post("/verify", response_model=Dict[str, Any])
async def verify_payment(
    payload: VerifyPaymentRequest,
    current_user: Dict = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    payment = await service.verify_payment(
        payload.razorpay_order_id,
        payload.razorpay_payment_id,
        payload.razorpay_signature,
        current_user,
    )
    return {"message": "Payment verified successfully", "payment": build_payment_response(payment)}


@router.get("/status/{application_id}", response_model=Dict[str, Any])
async def get_payment_status(
    application_id: str,
    current_user: Dict = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    payment = await service.get_status(application_id, current_user)
    return {"payment": build_payment_response(payment)}
