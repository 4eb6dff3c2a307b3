import logging
from datetime import datetime
from typing import Any, Dict, Mapping

from app.core.exceptions import AuthorizationError, InvalidStateError, NotFoundError, ValidationError
from app.database.models.application_model import Application
from app.database.models.payment_model import Payment
from app.schemas.application_schema import ApplicationStatus
from app.schemas.payment_schema import PaymentMethod, PaymentStatus
from app.services.application_service import find_application, require_owner_or_admin
from app.services.form_data_service import get_variant
from app.services.notification_service import NotificationService, notification_service
from app.services.payment_gateway import RazorpayGateway, payment_gateway
from app.workers.notification_dispatcher import NotificationDispatcher, notification_dispatcher

logger = logging.getLogger(__name__)


class PaymentService:

    def __init__(self, gateway: RazorpayGateway, notifier: NotificationService, dispatcher: NotificationDispatcher):
        self.gateway = gateway
        self.notifier = notifier
        self.dispatcher = dispatcher

    # Creates a gateway order for an application whose certificate is ready
    async def create_order(self, application_id: str, requester: Mapping[str, Any]) -> Dict[str, Any]:
        application = await find_application(application_id)
        if str(application.applicant_id) != str(requester.get("id")):
            raise AuthorizationError("Only the applicant can pay for this application")
        if application.status != ApplicationStatus.CERTIFICATE_GENERATED:
            raise InvalidStateError("Payment is only possible once the certificate has been generated")

        paid = await Payment.find_one(
            Payment.application_ref == application.id,
            Payment.method == PaymentMethod.GATEWAY,
            Payment.status == PaymentStatus.COMPLETED,
        )
        if paid is not None:
            raise InvalidStateError("Payment already completed for this application")

        amount = self._fee_for(application)
        order = await self.gateway.create_order(
            amount=amount,
            currency="INR",
            receipt=f"receipt_{application.application_id}",
            notes={
                "applicationId": application.application_id,
                "documentType": application.document_type.value,
                "userId": str(application.applicant_id),
            },
        )

        payment = Payment(
            application_id=application.application_id,
            application_ref=application.id,
            user_id=application.applicant_id,
            method=PaymentMethod.GATEWAY,
            amount=amount,
            currency=order.get("currency", "INR"),
            order_id=order["id"],
        )
        await payment.insert()
        await Application.find_one(Application.id == application.id).update(
            {"$set": {"payment_ref": payment.id, "updated_at": datetime.utcnow()}}
        )
        logger.info(f"Gateway order {payment.order_id} created for {application.application_id}")
        return {
            "orderId": order["id"],
            "amount": order.get("amount", int(round(amount * 100))),
            "currency": payment.currency,
            "keyId": self.gateway.key_id,
            "payment": payment,
        }

    # Fee configured for the application's document type
    @staticmethod
    def _fee_for(application: Application) -> float:
        return get_variant(application.document_type).fee

    async def verify_payment(
        self,
        order_id: str,
        gateway_payment_id: str,
        signature: str,
        requester: Mapping[str, Any],
    ) -> Payment:
        payment = await Payment.find_one(Payment.order_id == order_id)
        if payment is None:
            raise NotFoundError("Payment order not found")
        if str(payment.user_id) != str(requester.get("id")):
            raise AuthorizationError("Only the applicant can verify this payment")
        if payment.status == PaymentStatus.COMPLETED:
            return payment

        now = datetime.utcnow()
        if not self.gateway.verify_signature(order_id, gateway_payment_id, signature):
            payment.status = PaymentStatus.FAILED
            payment.updated_at = now
            await payment.save()
            logger.warning(f"Signature mismatch for order {order_id}")
            raise ValidationError("Payment verification failed")

        payment.status = PaymentStatus.COMPLETED
        payment.gateway_payment_id = gateway_payment_id
        payment.signature = signature
        payment.paid_at = now
        payment.updated_at = now
        await payment.save()
        logger.info(f"Payment {gateway_payment_id} verified for {payment.application_id}")

        self.dispatcher.dispatch(self.notifier.notify_payment_completed(payment), name=f"payment:{order_id}")
        return payment

    # Returns the most recent payment recorded for the application
    async def get_status(self, application_id: str, requester: Mapping[str, Any]) -> Payment:
        application = await find_application(application_id)
        require_owner_or_admin(application, requester)
        payments = await Payment.find(Payment.application_ref == application.id).sort(
            [("created_at", -1), ("_id", -1)]
        ).limit(1).to_list()
        if not payments:
            raise NotFoundError("No payment found for this application")
        return payments[0]


payment_service = PaymentService(
    gateway=payment_gateway,
    notifier=notification_service,
    dispatcher=notification_dispatcher,
)


def get_payment_service() -> PaymentService:
    return payment_service
