from fastapi import HTTPException, status
from beanie import PydanticObjectId
from app.database.models import User
from app.schemas import UserCreate
from app.core import hash_password, verify_password, create_access_token, create_refresh_token, decode_token
from typing import Dict, Optional
from datetime import datetime
import logging

logger = logging.getLogger(__name__)


def user_to_dict(user: User) -> Dict:
    return {
        "id": str(user.id),
        "email": user.email,
        "full_name": user.full_name,
        "role": user.role.value,
        "is_active": user.is_active,
        "created_at": user.created_at,
    }


class AuthService:
    # Register a new client account
    @staticmethod
    async def register_user(user_data: UserCreate) -> Dict:
        email = user_data.email.lower()
        existing_user = await User.find_one(User.email == email)
        if existing_user:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Email already registered"
            )

        try:
            hashed_password = hash_password(user_data.password)
        except ValueError:
            logger.warning("Password hashing failed")
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Password must be at least 8 characters long"
            )

        new_user = User(
            email=email,
            full_name=user_data.full_name.strip(),
            hashed_password=hashed_password,
            created_at=datetime.utcnow()
        )
        await new_user.insert()
        logger.info("User registered with ID: %s", new_user.id)

        return {**user_to_dict(new_user), "message": "User registered successfully"}

    # Authenticate user and issue access and refresh tokens
    @staticmethod
    async def login_user(email: str, password: str) -> Dict:
        user = await User.find_one(User.email == email.strip().lower())
        if not user or not verify_password(password, user.hashed_password):
            logger.warning("Failed login for email: %s", email)
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid email or password"
            )
        if not user.is_active:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Account is disabled"
            )

        return await AuthService._issue_tokens(user)

    @staticmethod
    async def _issue_tokens(user: User) -> Dict:
        claims = {"sub": str(user.id), "role": user.role.value}
        try:
            access_token = create_access_token(data=claims)
            refresh_token = create_refresh_token(data=claims)
        except ValueError as e:
            logger.error("Token creation failed: %s", e)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Could not create access token"
            )

        user.refresh_token = refresh_token
        user.updated_at = datetime.utcnow()
        await user.save()
        logger.debug("Issued tokens for user %s", user.id)
        return {
            "access_token": access_token,
            "refresh_token": refresh_token,
            "token_type": "bearer",
            "user": user_to_dict(user),
        }

    # Exchange a refresh token for a new token pair; the stored token must match
    @staticmethod
    async def refresh_user_token(refresh_token: str) -> Dict:
        invalid = HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid refresh token"
        )
        payload = decode_token(refresh_token)
        if not payload or payload.get("type") != "refresh" or not PydanticObjectId.is_valid(payload.get("sub", "")):
            raise invalid

        user = await User.get(PydanticObjectId(payload["sub"]))
        if not user or not user.is_active or user.refresh_token != refresh_token:
            raise invalid
        return await AuthService._issue_tokens(user)

    @staticmethod
    async def logout_user(user_id: str) -> None:
        await User.find_one(User.id == PydanticObjectId(user_id)).update(
            {"$set": {"refresh_token": None, "updated_at": datetime.utcnow()}}
        )
        logger.info("User %s logged out", user_id)

    # Retrieve an active user's public profile by id
    @staticmethod
    async def get_user_by_id(user_id: str) -> Optional[Dict]:
        if not PydanticObjectId.is_valid(user_id):
            return None
        user = await User.get(PydanticObjectId(user_id))
        if not user or not user.is_active:
            return None
        return user_to_dict(user)


auth_service = AuthService()
