import hashlib
import hmac
from datetime import timedelta

import pytest
from beanie import PydanticObjectId
from fastapi import HTTPException

from app.core.exceptions import AuthorizationError, InvalidStateError, NotFoundError, ValidationError
from app.core.security import create_access_token, create_refresh_token, decode_token, hash_password, verify_password
from app.database.models import Application, Notification, Payment, User
from app.schemas import UserCreate
from app.schemas.application_schema import ApplicationStatus, DocumentType, NotificationType
from app.schemas.payment_schema import PaymentMethod, PaymentStatus
from app.services.auth_service import auth_service
from app.services.notification_service import NotificationService
from app.services.payment_gateway import RazorpayGateway
from app.services.payment_service import PaymentService
from app.workers.notification_dispatcher import NotificationDispatcher
from tests.factories import as_requester

KEY_SECRET = "rzp_test_secret"


def sign(order_id, payment_id, secret=KEY_SECRET):
    return hmac.new(secret.encode(), f"{order_id}|{payment_id}".encode(), hashlib.sha256).hexdigest()


class FakeGateway(RazorpayGateway):
    def __init__(self):
        super().__init__(key_id="rzp_test_key", key_secret=KEY_SECRET)
        self.orders = []

    async def create_order(self, amount, currency, receipt, notes):
        self.orders.append({"amount": amount, "currency": currency, "receipt": receipt, "notes": notes})
        return {"id": f"order_{len(self.orders)}", "amount": int(round(amount * 100)), "currency": currency}


@pytest.fixture
async def payments(db):
    dispatcher = NotificationDispatcher()
    service = PaymentService(gateway=FakeGateway(), notifier=NotificationService(), dispatcher=dispatcher)
    yield service
    await dispatcher.drain()


async def issued_application(user, status=ApplicationStatus.CERTIFICATE_GENERATED, fee=20.0):
    application = Application(
        id=PydanticObjectId(),
        application_id="NIRADHAR-123456-a1b2c3",
        applicant_id=user.id,
        document_type=DocumentType.NIRADHAR_CERTIFICATE,
        status=status,
        form_data_ref=PydanticObjectId(),
        form_data_model="NiradharCertificate",
    )
    manual = Payment(
        application_id=application.application_id,
        application_ref=application.id,
        user_id=user.id,
        method=PaymentMethod.MANUAL_RECEIPT,
        status=PaymentStatus.COMPLETED,
        amount=fee,
    )
    await manual.insert()
    application.payment_ref = manual.id
    await application.insert()
    return application


def test_password_hashing():
    hashed = hash_password("correct horse")
    assert hashed != "correct horse"
    assert verify_password("correct horse", hashed)
    assert not verify_password("wrong horse", hashed)
    assert not verify_password("correct horse", "not-a-real-hash")


def test_short_passwords_are_refused():
    with pytest.raises(ValueError):
        hash_password("short")


def test_tokens_carry_their_type():
    access = decode_token(create_access_token({"sub": "abc"}))
    refresh = decode_token(create_refresh_token({"sub": "abc"}))
    assert access["type"] == "access"
    assert refresh["type"] == "refresh"
    assert access["sub"] == refresh["sub"] == "abc"


def test_expired_and_tampered_tokens_decode_to_none():
    expired = create_access_token({"sub": "abc"}, expires_delta=timedelta(seconds=-5))
    assert decode_token(expired) is None
    assert decode_token(create_access_token({"sub": "abc"}) + "x") is None


def test_user_create_requires_matching_passwords():
    with pytest.raises(ValueError):
        UserCreate(email="a@example.com", fullName="A", password="password-1", confirmPassword="password-2")


async def test_register_login_refresh_logout(db):
    created = await auth_service.register_user(
        UserCreate(email="Asha@Example.com", fullName=" Asha Patil ", password="s3cret-pass", confirmPassword="s3cret-pass")
    )
    assert created["email"] == "asha@example.com"
    assert created["full_name"] == "Asha Patil"
    assert created["role"] == "client"

    with pytest.raises(HTTPException) as exc:
        await auth_service.register_user(
            UserCreate(email="asha@example.com", fullName="Asha", password="s3cret-pass", confirmPassword="s3cret-pass")
        )
    assert exc.value.status_code == 400

    tokens = await auth_service.login_user("ASHA@example.com", "s3cret-pass")
    assert decode_token(tokens["access_token"])["sub"] == created["id"]
    assert tokens["user"]["id"] == created["id"]

    refreshed = await auth_service.refresh_user_token(tokens["refresh_token"])
    assert decode_token(refreshed["access_token"])["type"] == "access"

    with pytest.raises(HTTPException) as exc:
        await auth_service.refresh_user_token(tokens["access_token"])
    assert exc.value.status_code == 401

    await auth_service.logout_user(created["id"])
    user = await User.get(PydanticObjectId(created["id"]))
    assert user.refresh_token is None
    with pytest.raises(HTTPException):
        await auth_service.refresh_user_token(refreshed["refresh_token"])


async def test_login_rejects_bad_credentials_and_disabled_accounts(db):
    user = User(email="ravi@example.com", full_name="Ravi", hashed_password=hash_password("ravi-password"))
    await user.insert()

    with pytest.raises(HTTPException) as exc:
        await auth_service.login_user("ravi@example.com", "wrong-password")
    assert exc.value.status_code == 401

    user.is_active = False
    await user.save()
    with pytest.raises(HTTPException) as exc:
        await auth_service.login_user("ravi@example.com", "ravi-password")
    assert exc.value.status_code == 403
    assert await auth_service.get_user_by_id(str(user.id)) is None


def test_gateway_signature_verification():
    gateway = RazorpayGateway(key_id="rzp_test_key", key_secret=KEY_SECRET)
    assert gateway.verify_signature("order_1", "pay_1", sign("order_1", "pay_1"))
    assert not gateway.verify_signature("order_1", "pay_2", sign("order_1", "pay_1"))
    assert not gateway.verify_signature("order_1", "pay_1", sign("order_1", "pay_1", secret="other"))


async def test_create_order_charges_the_configured_fee(payments, applicant):
    application = await issued_application(applicant, fee=0.01)

    order = await payments.create_order(application.application_id, as_requester(applicant))

    assert order["orderId"] == "order_1"
    assert order["amount"] == 2000
    assert payments.gateway.orders[0]["amount"] == 20
    assert order["keyId"] == "rzp_test_key"
    assert payments.gateway.orders[0]["receipt"] == "receipt_NIRADHAR-123456-a1b2c3"

    payment = await Payment.find_one(Payment.order_id == "order_1")
    assert payment.method == PaymentMethod.GATEWAY
    assert payment.status == PaymentStatus.PENDING
    stored = await Application.get(application.id)
    assert stored.payment_ref == payment.id


async def test_create_order_requires_generated_certificate(payments, applicant):
    application = await issued_application(applicant, status=ApplicationStatus.APPROVED)
    with pytest.raises(InvalidStateError):
        await payments.create_order(application.application_id, as_requester(applicant))


async def test_create_order_is_owner_only(payments, applicant, admin):
    application = await issued_application(applicant)
    with pytest.raises(AuthorizationError):
        await payments.create_order(application.application_id, as_requester(admin))


async def test_verify_payment_completes_order(payments, applicant):
    application = await issued_application(applicant)
    await payments.create_order(application.application_id, as_requester(applicant))

    payment = await payments.verify_payment("order_1", "pay_9", sign("order_1", "pay_9"), as_requester(applicant))

    assert payment.status == PaymentStatus.COMPLETED
    assert payment.gateway_payment_id == "pay_9"
    assert payment.paid_at is not None

    await payments.dispatcher.drain()
    notification = await Notification.find_one(Notification.type == NotificationType.PAYMENT_COMPLETED)
    assert notification.user_id == applicant.id

    with pytest.raises(InvalidStateError):
        await payments.create_order(application.application_id, as_requester(applicant))

    status = await payments.get_status(application.application_id, as_requester(applicant))
    assert status.id == payment.id


async def test_verify_payment_with_bad_signature(payments, applicant):
    application = await issued_application(applicant)
    await payments.create_order(application.application_id, as_requester(applicant))

    with pytest.raises(ValidationError):
        await payments.verify_payment("order_1", "pay_9", "forged", as_requester(applicant))

    payment = await Payment.find_one(Payment.order_id == "order_1")
    assert payment.status == PaymentStatus.FAILED


async def test_verify_unknown_order(payments, applicant):
    with pytest.raises(NotFoundError):
        await payments.verify_payment("order_404", "pay_1", "sig", as_requester(applicant))
