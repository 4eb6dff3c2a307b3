from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator
from typing import Optional
from datetime import datetime

from app.schemas.application_schema import UserRole


class UserCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr = Field(..., description="Email address of the user")
    full_name: str = Field(..., min_length=1, alias="fullName", description="Full name of the user")
    password: str = Field(..., min_length=8, description="Password for the user account")
    confirm_password: str = Field(..., alias="confirmPassword", description="Must match password")

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class UserUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    full_name: Optional[str] = Field(None, min_length=1, alias="fullName")
    role: Optional[UserRole] = None
    is_active: Optional[bool] = Field(None, alias="isActive")
    password: Optional[str] = Field(None, min_length=8)


class UserResponse(BaseModel):
    id: str = Field(..., description="Unique identifier for the user")
    email: EmailStr = Field(..., description="Email address of the user")
    full_name: str = Field(..., description="Full name of the user")
    role: UserRole = UserRole.CLIENT
    is_active: bool = True
    created_at: Optional[datetime] = None
    message: Optional[str] = None


class Token(BaseModel):
    access_token: str = Field(..., description="Access token for the user")
    refresh_token: Optional[str] = Field(None, description="Refresh token for the user")
    token_type: str = Field(default="bearer", description="Type of the token")


class RefreshRequest(BaseModel):
    refresh_token: str = Field(..., min_length=1)
