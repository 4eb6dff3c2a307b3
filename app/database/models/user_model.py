from beanie import Document, PydanticObjectId
from pydantic import EmailStr, Field
from pymongo import ASCENDING, IndexModel
from datetime import datetime
from typing import Optional, List

from app.schemas.application_schema import UserRole


class User(Document):
    email: EmailStr = Field(..., description="Email address of the user")
    full_name: str = Field(..., description="Full name of the user")
    hashed_password: str = Field(..., description="Hashed password for the user account")
    role: UserRole = Field(default=UserRole.CLIENT, description="client or admin")
    refresh_token: Optional[str] = Field(None, description="Current refresh token; cleared on logout")
    applications_submitted: List[PydanticObjectId] = Field(default_factory=list)
    applications_pending: List[PydanticObjectId] = Field(default_factory=list)
    applications_approved: List[PydanticObjectId] = Field(default_factory=list)
    applications_rejected: List[PydanticObjectId] = Field(default_factory=list)
    is_active: bool = Field(default=True, description="Indicates if the user account is active")
    created_at: datetime = Field(default_factory=datetime.utcnow, description="Timestamp when the user was created")
    updated_at: Optional[datetime] = Field(None, description="Timestamp when the user was last updated")

    class Settings:
        name = "users"
        indexes = [IndexModel([("email", ASCENDING)], unique=True)]

