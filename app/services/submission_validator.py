import logging
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional

from fastapi import UploadFile

from app.core.config import settings
from app.core.exceptions import ValidationError
from app.schemas.form_schemas import FormBase
from app.services.form_data_service import FormVariant, validate_form
from app.utils.file_utils import IncomingFile

logger = logging.getLogger(__name__)

RECEIPT_TYPES = {"image/jpeg", "image/jpg", "image/png"}
DOCUMENT_TYPES = RECEIPT_TYPES | {
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}
CERTIFICATE_TYPES = {"application/pdf"}


@dataclass
class ValidatedSubmission:
    form: FormBase
    receipt: IncomingFile
    documents: List[IncomingFile] = field(default_factory=list)

    @property
    def files(self) -> List[IncomingFile]:
        return [self.receipt, *self.documents]


def _check_file(file: IncomingFile, allowed: set, max_size: int, label: str) -> IncomingFile:
    if file.content_type not in allowed:
        raise ValidationError(f"Invalid file type for {label}: {file.content_type}")
    if file.size == 0:
        raise ValidationError(f"{label} '{file.filename}' is empty")
    if file.size > max_size:
        limit_mb = max_size // (1024 * 1024)
        raise ValidationError(f"{label} '{file.filename}' exceeds the {limit_mb}MB limit")
    return file


async def validate_upload(upload: Optional[UploadFile], allowed: set, max_size: int, label: str) -> IncomingFile:
    if upload is None or not upload.filename:
        raise ValidationError(f"{label} is required")
    return _check_file(await IncomingFile.from_upload(upload), allowed, max_size, label)


async def validate_submission(
    variant: FormVariant,
    fields: Mapping[str, Any],
    receipt: Optional[UploadFile],
    documents: Optional[List[UploadFile]] = None,
) -> ValidatedSubmission:
    """Check form fields, the payment receipt and supporting documents.

    Nothing is uploaded or written here; the first problem found is raised as
    a ``ValidationError``.
    """
    form = validate_form(variant, fields)

    receipt_file = await validate_upload(receipt, RECEIPT_TYPES, settings.MAX_UPLOAD_SIZE, "Payment receipt")

    documents = [d for d in (documents or []) if d is not None and d.filename]
    if len(documents) > settings.MAX_SUPPORTING_DOCUMENTS:
        raise ValidationError(f"At most {settings.MAX_SUPPORTING_DOCUMENTS} supporting documents are allowed")

    document_files = [
        await validate_upload(doc, DOCUMENT_TYPES, settings.MAX_UPLOAD_SIZE, "Document")
        for doc in documents
    ]

    logger.info(
        f"Validated {variant.document_type.value} submission with receipt {receipt_file.filename} "
        f"and {len(document_files)} documents"
    )
    return ValidatedSubmission(form=form, receipt=receipt_file, documents=document_files)


async def validate_certificate(upload: Optional[UploadFile]) -> IncomingFile:
    return await validate_upload(upload, CERTIFICATE_TYPES, settings.MAX_CERTIFICATE_SIZE, "Certificate")
