from beanie import Document, PydanticObjectId
from pydantic import BaseModel, Field
from pymongo import ASCENDING, DESCENDING, IndexModel
from datetime import datetime
from typing import Optional, List
from bson import ObjectId

from app.schemas.application_schema import ApplicationStatus, DocumentType, StorageFolder


class FileReference(BaseModel):
    file_id: str = Field(default_factory=lambda: str(ObjectId()), description="Stable identifier used by the signed-url endpoint")
    file_name: str = Field(..., description="Stored object name (last path segment of the key)")
    original_name: str = Field(..., description="File name as uploaded by the applicant")
    file_path: str = Field(..., description="Object location within the bucket")
    storage_key: str = Field(..., description="Object key in storage; changes when the file moves folders")
    file_type: str = Field(..., description="MIME type")
    file_size: int = Field(..., ge=0)
    folder: StorageFolder = Field(default=StorageFolder.UNVERIFIED)
    is_payment_receipt: bool = Field(default=False)
    uploaded_at: datetime = Field(default_factory=datetime.utcnow)


class GeneratedCertificate(BaseModel):
    file_name: str
    file_path: str
    storage_key: str
    folder: StorageFolder = Field(default=StorageFolder.CERTIFICATE)
    content_type: str = "application/pdf"
    file_size: int = Field(..., ge=0)
    generated_at: datetime = Field(default_factory=datetime.utcnow)
    download_count: int = Field(default=0, ge=0)
    last_downloaded: Optional[datetime] = None


class Application(Document):
    application_id: str = Field(..., description="Human-readable application code, e.g. BIRTH-482913-a1b2c3")
    applicant_id: PydanticObjectId = Field(..., description="User who submitted the application")
    document_type: DocumentType = Field(..., description="Certificate category; selects the form-data collection")
    status: ApplicationStatus = Field(default=ApplicationStatus.PENDING)
    form_data_ref: PydanticObjectId = Field(..., description="Id of the typed form-data record")
    form_data_model: str = Field(..., description="Class name of the form-data record")
    uploaded_files: List[FileReference] = Field(default_factory=list)
    generated_certificate: Optional[GeneratedCertificate] = None
    payment_ref: Optional[PydanticObjectId] = Field(None, description="Authoritative payment record")
    admin_remarks: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    reviewed_by: Optional[PydanticObjectId] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "applications"
        indexes = [
            IndexModel([("application_id", ASCENDING)], unique=True),
            IndexModel([("applicant_id", ASCENDING), ("created_at", DESCENDING)]),
            IndexModel([("status", ASCENDING), ("created_at", DESCENDING)]),
        ]

    # Returns the payment receipt descriptor if one was tagged at submission
    def payment_receipt(self) -> Optional[FileReference]:
        return next((f for f in self.uploaded_files if f.is_payment_receipt), None)

    def find_file(self, file_id: str) -> Optional[FileReference]:
        return next((f for f in self.uploaded_files if f.file_id == file_id), None)
