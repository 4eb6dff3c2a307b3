from beanie import Document, PydanticObjectId
from pydantic import Field
from pymongo import ASCENDING, DESCENDING, IndexModel
from datetime import datetime
from typing import Optional

from app.schemas.application_schema import NotificationType


class Notification(Document):
    user_id: PydanticObjectId = Field(..., description="Recipient")
    application_id: Optional[PydanticObjectId] = Field(None, description="Application the notification is about")
    type: NotificationType = Field(...)
    title: str = Field(..., max_length=200)
    message: str = Field(...)
    is_read: bool = Field(default=False)
    email_sent: bool = Field(default=False)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "notifications"
        indexes = [
            IndexModel([("user_id", ASCENDING), ("created_at", DESCENDING)]),
            IndexModel([("application_id", ASCENDING)]),
        ]
