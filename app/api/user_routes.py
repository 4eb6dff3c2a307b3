from fastapi import APIRouter, Depends, Query, status
from typing import Any, Dict, Optional

from app.core.auth_dependencies import get_admin_user
from app.helpers.response_builder import build_user_response
from app.schemas.user_schemas import UserUpdate
from app.services.user_service import UserService, get_user_service

router = APIRouter(prefix="/admin/users", tags=["User Management"])


@router.get("", response_model=Dict[str, Any])
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    role: Optional[str] = Query(None),
    current_user: Dict = Depends(get_admin_user),
    service: UserService = Depends(get_user_service),
):
    result = await service.list_users(page, limit, role)
    result["users"] = [build_user_response(u) for u in result["users"]]
    return result


@router.get("/{user_id}", response_model=Dict[str, Any])
async def get_user(
    user_id: str,
    current_user: Dict = Depends(get_admin_user),
    service: UserService = Depends(get_user_service),
):
    return build_user_response(await service.get_user(user_id))


# Updates name, role, active flag or password of a user
@router.patch("/{user_id}", response_model=Dict[str, Any])
async def update_user(
    user_id: str,
    payload: UserUpdate,
    current_user: Dict = Depends(get_admin_user),
    service: UserService = Depends(get_user_service),
):
    user = await service.update_user(user_id, payload, current_user)
    return {"message": "User updated successfully", "user": build_user_response(user)}


@router.delete("/{user_id}", status_code=status.HTTP_200_OK)
async def delete_user(
    user_id: str,
    current_user: Dict = Depends(get_admin_user),
    service: UserService = Depends(get_user_service),
):
    await service.delete_user(user_id, current_user)
    return {"message": "User deleted successfully"}
