import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Type, Union

from beanie import PydanticObjectId
from pydantic import ValidationError as PydanticValidationError

from app.core.config import settings
from app.core.exceptions import NotFoundError, ValidationError
from app.database.models.application_model import Application
from app.database.models.form_data_models import (
    FormDataRecord,
    BirthCertificate,
    DeathCertificate,
    MarriageCertificate,
    Taxation,
    NoOutstandingDebts,
    HousingAssessment8,
    BPLCertificate,
    NiradharCertificate,
)
from app.schemas.application_schema import DocumentType
from app.schemas.form_schemas import (
    FormBase,
    BirthCertificateForm,
    DeathCertificateForm,
    MarriageCertificateForm,
    TaxationForm,
    NoOutstandingDebtsForm,
    HousingAssessment8Form,
    BPLCertificateForm,
    NiradharCertificateForm,
)
from app.utils.application_utils import normalize_fields

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FormVariant:
    document_type: DocumentType
    prefix: str
    label: str
    form: Type[FormBase]
    record: Type[FormDataRecord]

    @property
    def model_name(self) -> str:
        return self.record.__name__

    @property
    def fee(self) -> float:
        return settings.APPLICATION_FEE


FORM_VARIANTS: Dict[DocumentType, FormVariant] = {
    variant.document_type: variant
    for variant in (
        FormVariant(DocumentType.BIRTH_CERTIFICATE, "BIRTH", "Birth Certificate", BirthCertificateForm, BirthCertificate),
        FormVariant(DocumentType.DEATH_CERTIFICATE, "DEATH", "Death Certificate", DeathCertificateForm, DeathCertificate),
        FormVariant(DocumentType.MARRIAGE_CERTIFICATE, "MARRIAGE", "Marriage Certificate", MarriageCertificateForm, MarriageCertificate),
        FormVariant(DocumentType.TAXATION, "TAX", "Taxation Certificate", TaxationForm, Taxation),
        FormVariant(DocumentType.NO_OUTSTANDING_DEBTS, "NOD", "No Outstanding Debts Certificate", NoOutstandingDebtsForm, NoOutstandingDebts),
        FormVariant(DocumentType.HOUSING_ASSESSMENT_8, "HA8", "Housing Assessment Form 8", HousingAssessment8Form, HousingAssessment8),
        FormVariant(DocumentType.BPL_CERTIFICATE, "BPL", "BPL Certificate", BPLCertificateForm, BPLCertificate),
        FormVariant(DocumentType.NIRADHAR_CERTIFICATE, "NIRADHAR", "Niradhar Certificate", NiradharCertificateForm, NiradharCertificate),
    )
}


def get_variant(document_type: Union[DocumentType, str]) -> FormVariant:
    resolved = document_type if isinstance(document_type, DocumentType) else DocumentType.from_slug(document_type)
    if resolved is None or resolved not in FORM_VARIANTS:
        raise NotFoundError(f"Unknown document type '{document_type}'")
    return FORM_VARIANTS[resolved]


def first_error_message(exc: PydanticValidationError) -> str:
    error = exc.errors()[0]
    field = ".".join(str(part) for part in error.get("loc", ())) or "form"
    if error.get("type") == "missing":
        return f"{field} is required"
    message = error.get("msg", "is invalid")
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]
    return f"{field}: {message}"


# Validates raw form fields against the variant's schema; reports the first violation
def validate_form(variant: FormVariant, fields: Mapping[str, Any]) -> FormBase:
    try:
        return variant.form.model_validate(normalize_fields(fields))
    except PydanticValidationError as e:
        message = first_error_message(e)
        logger.info(f"{variant.document_type.value} form rejected: {message}")
        raise ValidationError(message)


def build_record(
    variant: FormVariant,
    form: FormBase,
    application_ref: PydanticObjectId,
    applicant_id: PydanticObjectId,
) -> FormDataRecord:
    return variant.record(
        id=PydanticObjectId(),
        application=application_ref,
        applicant_id=applicant_id,
        payment_amount=variant.fee,
        **form.model_dump(),
    )


async def load_form(application: Application) -> Optional[FormDataRecord]:
    variant = get_variant(application.document_type)
    return await variant.record.get(application.form_data_ref)
