import logging
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from beanie import PydanticObjectId

from app.core.exceptions import NotFoundError, ValidationError
from app.core.security import hash_password
from app.database.models.user_model import User
from app.schemas.user_schemas import UserUpdate

logger = logging.getLogger(__name__)


class UserService:
    """Admin-side user management."""

    @staticmethod
    async def _get(user_id: str) -> User:
        user = await User.get(PydanticObjectId(user_id)) if PydanticObjectId.is_valid(user_id) else None
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def list_users(self, page: int = 1, limit: int = 20, role: Optional[str] = None) -> Dict[str, Any]:
        page = max(page, 1)
        limit = min(max(limit, 1), 100)
        query = {"role": role} if role else {}
        total = await User.find(query).count()
        users = await User.find(query).sort([("created_at", -1)]).skip((page - 1) * limit).limit(limit).to_list()
        return {"users": users, "total": total, "page": page, "pages": (total + limit - 1) // limit}

    async def get_user(self, user_id: str) -> User:
        return await self._get(user_id)

    # Applies the provided fields; a new password is re-hashed
    async def update_user(self, user_id: str, data: UserUpdate, requester: Mapping[str, Any]) -> User:
        user = await self._get(user_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if not changes:
            raise ValidationError("No fields to update")

        if str(user.id) == str(requester.get("id")) and ("role" in changes or changes.get("is_active") is False):
            raise ValidationError("Admins cannot demote or deactivate themselves")

        password = changes.pop("password", None)
        if password:
            user.hashed_password = hash_password(password)
            user.refresh_token = None
        for field, value in changes.items():
            setattr(user, field, value)
        if "is_active" in changes and not changes["is_active"]:
            user.refresh_token = None

        user.updated_at = datetime.utcnow()
        await user.save()
        logger.info(f"User {user.id} updated by {requester.get('id')}: {sorted(changes) + (['password'] if password else [])}")
        return user

    async def delete_user(self, user_id: str, requester: Mapping[str, Any]) -> None:
        user = await self._get(user_id)
        if str(user.id) == str(requester.get("id")):
            raise ValidationError("Admins cannot delete their own account")
        await user.delete()
        logger.info(f"User {user_id} deleted by {requester.get('id')}")


user_service = UserService()


def get_user_service() -> UserService:
    return user_service
