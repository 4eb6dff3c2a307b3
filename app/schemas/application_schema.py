from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class DocumentType(str, Enum):
    BIRTH_CERTIFICATE = "birth_certificate"
    DEATH_CERTIFICATE = "death_certificate"
    MARRIAGE_CERTIFICATE = "marriage_certificate"
    TAXATION = "taxation"
    NO_OUTSTANDING_DEBTS = "no_outstanding_debts"
    HOUSING_ASSESSMENT_8 = "housing_assessment_8"
    BPL_CERTIFICATE = "bpl_certificate"
    NIRADHAR_CERTIFICATE = "niradhar_certificate"

    # Accepts the enum value or the URL slug ("death-certificate")
    @classmethod
    def from_slug(cls, value: str) -> Optional["DocumentType"]:
        normalized = (value or "").strip().lower().replace("-", "_")
        try:
            return cls(normalized)
        except ValueError:
            return None


class ApplicationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CERTIFICATE_GENERATED = "certificate_generated"
    # Declared for compatibility with stored data; no transition sets it
    COMPLETED = "completed"


REVIEW_DECISIONS = (ApplicationStatus.APPROVED, ApplicationStatus.REJECTED)


class StorageFolder(str, Enum):
    UNVERIFIED = "unverified"
    VERIFIED = "verified"
    CERTIFICATE = "certificate"


class UserRole(str, Enum):
    CLIENT = "client"
    ADMIN = "admin"


class NotificationType(str, Enum):
    APPLICATION_SUBMITTED = "application_submitted"
    APPLICATION_APPROVED = "application_approved"
    APPLICATION_REJECTED = "application_rejected"
    CERTIFICATE_GENERATED = "certificate_generated"
    PAYMENT_COMPLETED = "payment_completed"


class ReviewRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: str = Field(..., description="Review decision: approved or rejected")
    admin_remarks: Optional[str] = Field(None, alias="adminRemarks", max_length=2000, description="Remarks shown to the applicant")

