"""Typed form-data records, one collection per certificate category.

Each record carries the validated form fields plus a back-reference to the
application it belongs to. Field definitions are shared with the submission
schemas in ``app.schemas.form_schemas``.
"""
from beanie import Document, PydanticObjectId
from pydantic import Field
from pymongo import ASCENDING, IndexModel
from datetime import datetime

from app.schemas.form_schemas import (
    BirthCertificateForm,
    DeathCertificateForm,
    MarriageCertificateForm,
    TaxationForm,
    NoOutstandingDebtsForm,
    HousingAssessment8Form,
    BPLCertificateForm,
    NiradharCertificateForm,
)


class FormDataRecord(Document):
    application: PydanticObjectId = Field(..., description="Owning application")
    applicant_id: PydanticObjectId = Field(..., description="User who submitted the form")
    payment_amount: float = Field(..., ge=0, description="Fee charged for the certificate")
    created_at: datetime = Field(default_factory=datetime.utcnow)


class BirthCertificate(FormDataRecord, BirthCertificateForm):
    class Settings:
        name = "birth_certificates"
        indexes = [IndexModel([("application", ASCENDING)], unique=True)]


class DeathCertificate(FormDataRecord, DeathCertificateForm):
    class Settings:
        name = "death_certificates"
        indexes = [IndexModel([("application", ASCENDING)], unique=True)]


class MarriageCertificate(FormDataRecord, MarriageCertificateForm):
    class Settings:
        name = "marriage_certificates"
        indexes = [IndexModel([("application", ASCENDING)], unique=True)]


class Taxation(FormDataRecord, TaxationForm):
    class Settings:
        name = "taxations"
        indexes = [IndexModel([("application", ASCENDING)], unique=True)]


class NoOutstandingDebts(FormDataRecord, NoOutstandingDebtsForm):
    class Settings:
        name = "no_outstanding_debts"
        indexes = [IndexModel([("application", ASCENDING)], unique=True)]


class HousingAssessment8(FormDataRecord, HousingAssessment8Form):
    class Settings:
        name = "housing_assessment_8"
        indexes = [IndexModel([("application", ASCENDING)], unique=True)]


class BPLCertificate(FormDataRecord, BPLCertificateForm):
    class Settings:
        name = "bpl_certificates"
        indexes = [IndexModel([("application", ASCENDING)], unique=True)]


class NiradharCertificate(FormDataRecord, NiradharCertificateForm):
    class Settings:
        name = "niradhar_certificates"
        indexes = [IndexModel([("application", ASCENDING)], unique=True)]


FORM_DATA_MODELS = [
    BirthCertificate,
    DeathCertificate,
    MarriageCertificate,
    Taxation,
    NoOutstandingDebts,
    HousingAssessment8,
    BPLCertificate,
    NiradharCertificate,
]
