"""
In-app notifications and email for application lifecycle events.

Every public ``notify_*`` coroutine swallows and logs its own failures so it
can run detached from the request that triggered it.
"""

import asyncio
import logging
import smtplib
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any, Dict, Optional

from beanie import PydanticObjectId

from app.core.config import settings
from app.core.exceptions import AuthorizationError, NotFoundError
from app.database.models.application_model import Application
from app.database.models.notification_model import Notification
from app.database.models.payment_model import Payment
from app.database.models.user_model import User
from app.schemas.application_schema import ApplicationStatus, NotificationType
from app.services.form_data_service import get_variant

logger = logging.getLogger(__name__)


def _label(application: Application) -> str:
    return get_variant(application.document_type).label


class NotificationService:
    """Service for in-app notifications and SMTP email."""

    def __init__(self):
        if settings.SMTP_HOST and settings.SMTP_USER:
            logger.info("Email notifications enabled")
        else:
            logger.warning("SMTP not configured. Set SMTP_HOST, SMTP_USER and SMTP_PASSWORD to send email")

    def _send_email_sync(self, to_email: str, subject: str, body: str) -> bool:
        if not settings.SMTP_HOST or not settings.SMTP_USER or not settings.SMTP_PASSWORD:
            logger.info(f"Email not configured. Would send to {to_email}: {subject}")
            return False

        msg = MIMEMultipart()
        msg["From"] = settings.EMAIL_FROM
        msg["To"] = to_email
        msg["Subject"] = subject
        msg.attach(MIMEText(body, "plain"))

        with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=30) as server:
            server.starttls()
            server.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
            server.send_message(msg)
        return True

    async def send_email(self, to_email: Optional[str], subject: str, body: str) -> bool:
        if not to_email:
            return False
        try:
            sent = await asyncio.to_thread(self._send_email_sync, to_email, subject, body)
            if sent:
                logger.info(f"Email '{subject}' sent to {to_email}")
            return sent
        except Exception as e:
            logger.error(f"Error sending email to {to_email}: {e}")
            return False

    async def create_notification(
        self,
        user_id: PydanticObjectId,
        application_id: Optional[PydanticObjectId],
        type: NotificationType,
        title: str,
        message: str,
    ) -> Optional[Notification]:
        try:
            notification = Notification(
                user_id=user_id,
                application_id=application_id,
                type=type,
                title=title,
                message=message,
            )
            await notification.insert()
            return notification
        except Exception as e:
            logger.error(f"Failed to create notification for user {user_id}: {e}")
            return None

    # Updates the application's notification in place, creating it if missing
    async def upsert_application_notification(
        self,
        application: Application,
        type: NotificationType,
        title: str,
        message: str,
    ) -> Optional[Notification]:
        try:
            notification = await Notification.find_one(
                Notification.application_id == application.id,
                Notification.user_id == application.applicant_id,
            )
            if notification is None:
                return await self.create_notification(application.applicant_id, application.id, type, title, message)

            notification.type = type
            notification.title = title
            notification.message = message
            notification.is_read = False
            notification.updated_at = datetime.utcnow()
            await notification.save()
            return notification
        except Exception as e:
            logger.error(f"Failed to upsert notification for application {application.application_id}: {e}")
            return None

    async def notify_application_submitted(self, application: Application, applicant: User) -> None:
        label = _label(application)
        await self.create_notification(
            applicant.id,
            application.id,
            NotificationType.APPLICATION_SUBMITTED,
            f"{label} application submitted",
            f"Your {label} application {application.application_id} has been received and is pending review.",
        )
        await self.send_email(
            settings.ADMIN_EMAIL,
            f"New {label} application: {application.application_id}",
            (
                f"A new {label} application has been submitted.\n\n"
                f"Application ID: {application.application_id}\n"
                f"Applicant: {applicant.full_name} <{applicant.email}>\n"
                f"Submitted at: {application.created_at.isoformat()}\n\n"
                "Please review it in the admin dashboard."
            ),
        )

    async def notify_status_update(self, application: Application, applicant: Optional[User]) -> None:
        label = _label(application)
        if application.status == ApplicationStatus.APPROVED:
            type = NotificationType.APPLICATION_APPROVED
            title = f"{label} application approved"
            message = f"Your application {application.application_id} has been approved. Your certificate will be issued shortly."
        else:
            type = NotificationType.APPLICATION_REJECTED
            title = f"{label} application rejected"
            message = f"Your application {application.application_id} has been rejected."
            if application.admin_remarks:
                message = f"{message} Reason: {application.admin_remarks}"

        notification = await self.upsert_application_notification(application, type, title, message)

        if applicant is None:
            logger.warning(f"Applicant for {application.application_id} not found; skipping status email")
            return
        sent = await self.send_email(applicant.email, title, f"Dear {applicant.full_name},\n\n{message}")
        if sent and notification is not None:
            try:
                notification.email_sent = True
                await notification.save()
            except Exception as e:
                logger.error(f"Failed to flag email_sent on notification {notification.id}: {e}")

    async def notify_certificate_generated(self, application: Application, applicant: Optional[User]) -> None:
        label = _label(application)
        title = f"{label} issued"
        message = f"Your certificate for application {application.application_id} is ready to download."
        await self.upsert_application_notification(application, NotificationType.CERTIFICATE_GENERATED, title, message)
        if applicant is not None:
            await self.send_email(applicant.email, title, f"Dear {applicant.full_name},\n\n{message}")

    async def notify_payment_completed(self, payment: Payment) -> None:
        await self.create_notification(
            payment.user_id,
            payment.application_ref,
            NotificationType.PAYMENT_COMPLETED,
            "Payment received",
            f"We received your payment of {payment.currency} {payment.amount:.2f} for application {payment.application_id}.",
        )

    # Lists the current user's notifications, newest first
    async def list_for_user(self, user_id: str, page: int = 1, limit: int = 20, unread_only: bool = False) -> Dict[str, Any]:
        query: Dict[str, Any] = {"user_id": PydanticObjectId(user_id)}
        if unread_only:
            query["is_read"] = False
        total = await Notification.find(query).count()
        unread = await Notification.find({"user_id": PydanticObjectId(user_id), "is_read": False}).count()
        items = await Notification.find(query).sort([("created_at", -1)]).skip((page - 1) * limit).limit(limit).to_list()
        return {"notifications": items, "total": total, "unread": unread, "page": page, "limit": limit}

    async def mark_read(self, notification_id: str, user_id: str) -> Notification:
        if not PydanticObjectId.is_valid(notification_id):
            raise NotFoundError("Notification not found")
        notification = await Notification.get(PydanticObjectId(notification_id))
        if notification is None:
            raise NotFoundError("Notification not found")
        if str(notification.user_id) != str(user_id):
            raise AuthorizationError()
        if not notification.is_read:
            notification.is_read = True
            notification.updated_at = datetime.utcnow()
            await notification.save()
        return notification


notification_service = NotificationService()
