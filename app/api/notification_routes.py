from fastapi import APIRouter, Depends, Query
from typing import Any, Dict

from app.core.auth_dependencies import get_current_user
from app.helpers.response_builder import build_notification_response
from app.services.notification_service import notification_service

router = APIRouter(prefix="/notifications", tags=["Notifications"])


# Lists the current user's notifications, newest first
@router.get("", response_model=Dict[str, Any])
async def list_notifications(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    unread_only: bool = Query(False, alias="unreadOnly"),
    current_user: Dict = Depends(get_current_user),
):
    result = await notification_service.list_for_user(current_user["id"], page, limit, unread_only)
    result["notifications"] = [build_notification_response(n) for n in result["notifications"]]
    return result


@router.patch("/{notification_id}/read", response_model=Dict[str, Any])
async def mark_notification_read(
    notification_id: str,
    current_user: Dict = Depends(get_current_user),
):
    notification = await notification_service.mark_read(notification_id, current_user["id"])
    return build_notification_response(notification)
