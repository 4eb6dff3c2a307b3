import logging
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from beanie import PydanticObjectId
from fastapi import UploadFile
from pymongo.errors import DuplicateKeyError

from app.core.exceptions import (
    AuthorizationError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from app.database.connection import transaction
from app.database.models.application_model import Application, FileReference, GeneratedCertificate
from app.database.models.payment_model import Payment
from app.database.models.user_model import User
from app.schemas.application_schema import (
    REVIEW_DECISIONS,
    ApplicationStatus,
    DocumentType,
    StorageFolder,
    UserRole,
)
from app.schemas.payment_schema import PaymentMethod, PaymentStatus
from app.services.form_data_service import FormVariant, build_record, get_variant, load_form
from app.services.notification_service import NotificationService, notification_service
from app.services.storage_service import StorageService, storage_service
from app.services.submission_validator import ValidatedSubmission, validate_certificate, validate_submission
from app.utils.application_utils import generate_application_id
from app.workers.notification_dispatcher import NotificationDispatcher, notification_dispatcher

logger = logging.getLogger(__name__)

MAX_ID_ATTEMPTS = 3
MAX_PAGE_SIZE = 100


def is_admin(requester: Mapping[str, Any]) -> bool:
    return requester.get("role") == UserRole.ADMIN.value


def require_admin(requester: Mapping[str, Any]) -> None:
    if not is_admin(requester):
        raise AuthorizationError("Admin access required")


def require_owner_or_admin(application: Application, requester: Mapping[str, Any]) -> None:
    if str(application.applicant_id) != str(requester.get("id")) and not is_admin(requester):
        raise AuthorizationError("You do not have access to this application")


async def find_application(application_id: str) -> Application:
    """Look an application up by its human code or by its document id."""
    application = await Application.find_one(Application.application_id == application_id)
    if application is None and PydanticObjectId.is_valid(application_id):
        application = await Application.get(PydanticObjectId(application_id))
    if application is None:
        raise NotFoundError("Application not found")
    return application


def _page_window(page: int, limit: int):
    page = max(int(page or 1), 1)
    limit = min(max(int(limit or 10), 1), MAX_PAGE_SIZE)
    return page, limit


class ApplicationService:

    def __init__(
        self,
        storage: StorageService,
        notifier: NotificationService,
        dispatcher: NotificationDispatcher,
    ):
        self.storage = storage
        self.notifier = notifier
        self.dispatcher = dispatcher
        logger.info("ApplicationService initialized")

    # Validates, uploads and persists a new application, then notifies
    async def submit(
        self,
        document_type: str,
        fields: Mapping[str, Any],
        receipt: Optional[UploadFile],
        documents: Optional[List[UploadFile]],
        requester: Mapping[str, Any],
    ) -> Application:
        variant = get_variant(document_type)
        submission = await validate_submission(variant, fields, receipt, documents)

        applicant = await User.get(PydanticObjectId(requester["id"]))
        if applicant is None:
            raise NotFoundError("User not found")

        logger.info(f"Submitting {variant.document_type.value} application for user {applicant.id}")
        refs = await self.storage.upload(submission.files, StorageFolder.UNVERIFIED)
        self._tag_receipt(refs, submission.receipt.filename)

        try:
            application = await self._persist_submission(variant, submission, refs, applicant)
        except Exception:
            logger.error(f"Persisting {variant.document_type.value} application failed; removing uploaded files")
            await self.storage.delete_many([ref.storage_key for ref in refs])
            raise

        logger.info(f"Application {application.application_id} created for user {applicant.id}")
        self.dispatcher.dispatch(
            self.notifier.notify_application_submitted(application, applicant),
            name=f"submitted:{application.application_id}",
        )
        return application

    @staticmethod
    def _tag_receipt(refs: List[FileReference], receipt_name: str) -> None:
        for ref in refs:
            if ref.original_name == receipt_name:
                ref.is_payment_receipt = True
                return

    async def _persist_submission(
        self,
        variant: FormVariant,
        submission: ValidatedSubmission,
        refs: List[FileReference],
        applicant: User,
    ) -> Application:
        for attempt in range(MAX_ID_ATTEMPTS):
            application_code = generate_application_id(variant.prefix)
            try:
                return await self._write_submission(variant, submission, refs, applicant, application_code)
            except DuplicateKeyError:
                if attempt == MAX_ID_ATTEMPTS - 1 or not await self._code_taken(application_code):
                    raise
                logger.warning(f"Application id {application_code} already taken, regenerating")

    @staticmethod
    async def _code_taken(application_code: str) -> bool:
        return await Application.find_one(Application.application_id == application_code) is not None

    # Inserts application, form record and payment as one unit
    async def _write_submission(
        self,
        variant: FormVariant,
        submission: ValidatedSubmission,
        refs: List[FileReference],
        applicant: User,
        application_code: str,
    ) -> Application:
        application_ref = PydanticObjectId()
        record = build_record(variant, submission.form, application_ref, applicant.id)
        receipt = next((ref for ref in refs if ref.is_payment_receipt), None)

        payment = Payment(
            id=PydanticObjectId(),
            application_id=application_code,
            application_ref=application_ref,
            user_id=applicant.id,
            method=PaymentMethod.MANUAL_RECEIPT,
            amount=variant.fee,
            utr_number=getattr(submission.form, "utr_number", None),
            receipt_key=receipt.storage_key if receipt else None,
        )
        application = Application(
            id=application_ref,
            application_id=application_code,
            applicant_id=applicant.id,
            document_type=variant.document_type,
            status=ApplicationStatus.PENDING,
            form_data_ref=record.id,
            form_data_model=variant.model_name,
            uploaded_files=refs,
            payment_ref=payment.id,
        )

        inserted = []
        async with transaction() as session:
            try:
                for document in (application, record, payment):
                    await document.insert(session=session)
                    inserted.append(document)
                await User.find_one(User.id == applicant.id).update(
                    {
                        "$push": {
                            "applications_submitted": application_ref,
                            "applications_pending": application_ref,
                        },
                        "$set": {"updated_at": datetime.utcnow()},
                    },
                    session=session,
                )
            except Exception:
                if session is None:
                    await self._compensate(inserted)
                raise
        return application

    @staticmethod
    async def _compensate(documents) -> None:
        for document in reversed(documents):
            try:
                await document.delete()
                logger.info(f"Rolled back {type(document).__name__} {document.id}")
            except Exception as e:
                logger.error(f"Failed to roll back {type(document).__name__} {document.id}: {e}")

    # Approves or rejects a pending application
    async def review(
        self,
        application_id: str,
        status: str,
        remarks: Optional[str],
        requester: Mapping[str, Any],
    ) -> Application:
        require_admin(requester)
        try:
            decision = ApplicationStatus(status)
        except ValueError:
            decision = None
        if decision not in REVIEW_DECISIONS:
            raise ValidationError("Status must be either approved or rejected")

        application = await find_application(application_id)
        if application.status != ApplicationStatus.PENDING:
            raise InvalidStateError(f"Application is already reviewed (status: {application.status.value})")

        now = datetime.utcnow()
        reviewer = PydanticObjectId(requester["id"])
        approved = decision == ApplicationStatus.APPROVED
        review_fields = {
            "status": decision,
            "admin_remarks": remarks,
            "reviewed_at": now,
            "reviewed_by": reviewer,
            "updated_at": now,
        }

        async with transaction() as session:
            result = await Application.find_one(
                Application.id == application.id,
                Application.status == ApplicationStatus.PENDING,
            ).update({"$set": review_fields}, session=session)
            if result is None or result.modified_count == 0:
                raise InvalidStateError("Application is already reviewed")

            if application.payment_ref is not None:
                await Payment.find_one(
                    Payment.id == application.payment_ref,
                    Payment.method == PaymentMethod.MANUAL_RECEIPT,
                ).update(
                    {"$set": {
                        "status": PaymentStatus.COMPLETED if approved else PaymentStatus.FAILED,
                        "paid_at": now if approved else None,
                        "updated_at": now,
                    }},
                    session=session,
                )

            target = "applications_approved" if approved else "applications_rejected"
            await User.find_one(User.id == application.applicant_id).update(
                {"$pull": {"applications_pending": application.id}, "$addToSet": {target: application.id}},
                session=session,
            )

        for field, value in review_fields.items():
            setattr(application, field, value)
        logger.info(f"Application {application.application_id} {decision.value} by {reviewer}")

        if approved:
            await self._move_to_verified(application)

        applicant = await User.get(application.applicant_id)
        self.dispatcher.dispatch(
            self.notifier.notify_status_update(application, applicant),
            name=f"reviewed:{application.application_id}",
        )
        return application

    # Moves unverified uploads to the verified folder; per-file failures are logged
    async def _move_to_verified(self, application: Application) -> None:
        moved = 0
        for ref in application.uploaded_files:
            if ref.folder != StorageFolder.UNVERIFIED:
                continue
            try:
                result = await self.storage.move_to_folder(ref.storage_key, StorageFolder.VERIFIED)
            except Exception as e:
                logger.error(f"Failed to move {ref.storage_key} for {application.application_id}: {e}")
                continue
            ref.storage_key = result["newKey"]
            ref.file_path = result["newKey"]
            ref.folder = StorageFolder.VERIFIED
            moved += 1

        if moved:
            try:
                await self._save_file_locations(application)
            except Exception as e:
                logger.error(f"Failed to record moved file locations for {application.application_id}: {e}")
        logger.info(f"Moved {moved}/{len(application.uploaded_files)} files to verified for {application.application_id}")

    @staticmethod
    async def _save_file_locations(application: Application) -> None:
        await Application.find_one(Application.id == application.id).update(
            {"$set": {"uploaded_files": application.uploaded_files, "updated_at": datetime.utcnow()}}
        )

    # Uploads the issued certificate PDF for an approved application
    async def issue_certificate(
        self,
        application_id: str,
        certificate: Optional[UploadFile],
        requester: Mapping[str, Any],
    ) -> Application:
        require_admin(requester)
        file = await validate_certificate(certificate)

        application = await find_application(application_id)
        if application.status != ApplicationStatus.APPROVED:
            raise InvalidStateError("Certificate can only be uploaded for approved applications")

        ref = await self.storage.upload_file(file, StorageFolder.CERTIFICATE)
        now = datetime.utcnow()
        generated = GeneratedCertificate(
            file_name=ref.file_name,
            file_path=ref.file_path,
            storage_key=ref.storage_key,
            content_type=ref.file_type,
            file_size=ref.file_size,
            generated_at=now,
        )

        try:
            result = await Application.find_one(
                Application.id == application.id,
                Application.status == ApplicationStatus.APPROVED,
            ).update({"$set": {
                "generated_certificate": generated,
                "status": ApplicationStatus.CERTIFICATE_GENERATED,
                "updated_at": now,
            }})
            if result is None or result.modified_count == 0:
                raise InvalidStateError("Certificate can only be uploaded for approved applications")
        except Exception:
            await self.storage.delete_many([ref.storage_key])
            raise

        application.generated_certificate = generated
        application.status = ApplicationStatus.CERTIFICATE_GENERATED
        application.updated_at = now
        logger.info(f"Certificate issued for {application.application_id}: {ref.storage_key}")

        applicant = await User.get(application.applicant_id)
        self.dispatcher.dispatch(
            self.notifier.notify_certificate_generated(application, applicant),
            name=f"certificate:{application.application_id}",
        )
        return application

    # Returns the application with its typed form data and payment record
    async def get_details(self, application_id: str, requester: Mapping[str, Any]) -> Dict[str, Any]:
        application = await find_application(application_id)
        require_owner_or_admin(application, requester)
        form_data = await load_form(application)
        payment = await Payment.get(application.payment_ref) if application.payment_ref else None
        return {"application": application, "form_data": form_data, "payment": payment}

    async def _paginate(self, query: Dict[str, Any], page: int, limit: int) -> Dict[str, Any]:
        page, limit = _page_window(page, limit)
        total = await Application.find(query).count()
        applications = await Application.find(query).sort(
            [("created_at", -1), ("_id", -1)]
        ).skip((page - 1) * limit).limit(limit).to_list()
        return {
            "applications": applications,
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "totalPages": (total + limit - 1) // limit,
            },
        }

    async def fetch_for_user(self, user_id: str, page: int, limit: int, requester: Mapping[str, Any]) -> Dict[str, Any]:
        user = await User.get(PydanticObjectId(user_id)) if PydanticObjectId.is_valid(user_id) else None
        if user is None:
            raise NotFoundError("User not found")
        if str(requester.get("id")) != str(user.id) and not is_admin(requester):
            raise AuthorizationError("You can only view your own applications")
        return await self._paginate({"applicant_id": user.id}, page, limit)

    async def fetch_by_status(
        self,
        status: Optional[str],
        page: int,
        limit: int,
        requester: Mapping[str, Any],
        document_type: Optional[str] = None,
    ) -> Dict[str, Any]:
        require_admin(requester)
        query: Dict[str, Any] = {}
        if status:
            try:
                query["status"] = ApplicationStatus(status).value
            except ValueError:
                raise ValidationError(f"Invalid status '{status}'")
        if document_type:
            resolved = DocumentType.from_slug(document_type)
            if resolved is None:
                raise ValidationError(f"Invalid document type '{document_type}'")
            query["document_type"] = resolved.value
        return await self._paginate(query, page, limit)

    async def fetch_all_for_admin(self, page: int, limit: int, requester: Mapping[str, Any]) -> Dict[str, Any]:
        require_admin(requester)
        return await self._paginate({}, page, limit)

    # Resolves a signed URL for the receipt, the certificate or an uploaded file
    async def resolve_file_url(self, application_id: str, selector: str, requester: Mapping[str, Any]) -> Dict[str, Any]:
        application = await find_application(application_id)
        require_owner_or_admin(application, requester)

        if selector == "certificate":
            certificate = application.generated_certificate
            if certificate is None:
                raise NotFoundError("Certificate has not been generated yet")
            signed = await self.storage.signed_url(certificate.storage_key)
            now = datetime.utcnow()
            await Application.find_one(Application.id == application.id).update({
                "$inc": {"generated_certificate.download_count": 1},
                "$set": {"generated_certificate.last_downloaded": now},
            })
            certificate.download_count += 1
            certificate.last_downloaded = now
            file_name, storage_key = certificate.file_name, certificate.storage_key
        else:
            ref = application.payment_receipt() if selector == "receipt" else application.find_file(selector)
            if ref is None:
                raise NotFoundError("File not found")
            signed = await self.storage.signed_url(ref.storage_key)
            file_name, storage_key = ref.original_name, ref.storage_key

        return {
            "url": signed["url"],
            "fileName": file_name,
            "storageKey": storage_key,
            "expiresIn": signed["expiresIn"],
            "expiresAt": signed["expiresAt"],
        }


application_service = ApplicationService(
    storage=storage_service,
    notifier=notification_service,
    dispatcher=notification_dispatcher,
)


def get_application_service() -> ApplicationService:
    return application_service
