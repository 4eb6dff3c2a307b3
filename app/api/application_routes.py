from fastapi import APIRouter, Depends, File, Query, Request, UploadFile, status
from starlette.datastructures import UploadFile as StarletteUploadFile
from typing import Any, Dict, Optional
import logging

from app.core.auth_dependencies import get_current_user, get_admin_user
from app.helpers.response_builder import (
    build_application_details_response,
    build_application_list_response,
    build_application_response,
)
from app.schemas.application_schema import ReviewRequest
from app.services.application_service import ApplicationService, get_application_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/applications", tags=["Applications"])

FILE_FIELDS = {"paymentReceipt", "documents"}


# Lists every application, newest first
@router.get("/admin", response_model=Dict[str, Any])
async def get_admin_applications(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current_user: Dict = Depends(get_admin_user),
    service: ApplicationService = Depends(get_application_service),
):
    result = await service.fetch_all_for_admin(page, limit, current_user)
    return build_application_list_response(result)


# Lists applications filtered by status and optionally document type
@router.get("/admin/filter", response_model=Dict[str, Any])
async def get_applications_by_status(
    status_filter: Optional[str] = Query(None, alias="status"),
    document_type: Optional[str] = Query(None, alias="documentType"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current_user: Dict = Depends(get_admin_user),
    service: ApplicationService = Depends(get_application_service),
):
    result = await service.fetch_by_status(status_filter, page, limit, current_user, document_type=document_type)
    return build_application_list_response(result)


# Approves or rejects a pending application
@router.post("/admin/review/{application_id}", response_model=Dict[str, Any])
async def review_application(
    application_id: str,
    payload: ReviewRequest,
    current_user: Dict = Depends(get_admin_user),
    service: ApplicationService = Depends(get_application_service),
):
    application = await service.review(application_id, payload.status, payload.admin_remarks, current_user)
    return {
        "message": f"Application {application.status.value} successfully",
        "application": build_application_response(application),
    }


# Uploads the issued certificate (PDF) for an approved application
@router.post("/admin/certificate/{application_id}", response_model=Dict[str, Any])
async def upload_certificate(
    application_id: str,
    certificate: Optional[UploadFile] = File(None),
    current_user: Dict = Depends(get_admin_user),
    service: ApplicationService = Depends(get_application_service),
):
    application = await service.issue_certificate(application_id, certificate, current_user)
    return {
        "message": "Certificate uploaded successfully",
        "application": build_application_response(application),
    }


# Lists a user's applications; owners and admins only
@router.get("/user/{user_id}", response_model=Dict[str, Any])
async def get_user_applications(
    user_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current_user: Dict = Depends(get_current_user),
    service: ApplicationService = Depends(get_application_service),
):
    result = await service.fetch_for_user(user_id, page, limit, current_user)
    return build_application_list_response(result)


# Issues a signed URL for an uploaded file, the receipt or the certificate
@router.get("/files/{application_id}/{file_id}/signed-url", response_model=Dict[str, Any])
async def generate_file_signed_url(
    application_id: str,
    file_id: str,
    current_user: Dict = Depends(get_current_user),
    service: ApplicationService = Depends(get_application_service),
):
    return await service.resolve_file_url(application_id, file_id, current_user)


# Returns an application with its form data and payment details
@router.get("/{application_id}", response_model=Dict[str, Any])
async def get_application_details(
    application_id: str,
    current_user: Dict = Depends(get_current_user),
    service: ApplicationService = Depends(get_application_service),
):
    details = await service.get_details(application_id, current_user)
    return build_application_details_response(details)


# Submits a certificate application as multipart form data
@router.post("/{document_type}", response_model=Dict[str, Any], status_code=status.HTTP_201_CREATED)
async def submit_application(
    document_type: str,
    request: Request,
    current_user: Dict = Depends(get_current_user),
    service: ApplicationService = Depends(get_application_service),
):
    form = await request.form()
    receipt = form.get("paymentReceipt")
    if not isinstance(receipt, StarletteUploadFile):
        receipt = None
    documents = [d for d in form.getlist("documents") if isinstance(d, StarletteUploadFile)]
    fields = {
        key: value
        for key, value in form.multi_items()
        if key not in FILE_FIELDS and isinstance(value, str)
    }

    application = await service.submit(document_type, fields, receipt, documents, current_user)
    return {
        "message": "Application submitted successfully",
        "application": build_application_response(application),
    }
