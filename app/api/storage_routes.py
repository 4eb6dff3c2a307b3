from fastapi import APIRouter, Depends, Query
from typing import Any, Dict

from app.core.auth_dependencies import get_admin_user
from app.services.storage_service import StorageService, get_storage_service

router = APIRouter(prefix="/storage", tags=["Storage"])


# Lists stored objects in one folder, or in all of them
@router.get("/files", response_model=Dict[str, Any])
async def list_files(
    folder: str = Query("all"),
    limit: int = Query(100, ge=1, le=1000),
    current_user: Dict = Depends(get_admin_user),
    storage: StorageService = Depends(get_storage_service),
):
    files = await storage.list_by_folder(folder, limit)
    return {"folder": folder, "count": len(files), "files": files}
