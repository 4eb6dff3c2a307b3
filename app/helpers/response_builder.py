from datetime import datetime
from typing import Any, Dict, Optional

from beanie.odm.fields import PydanticObjectId


def convert_objectid(obj):
    """Convert PydanticObjectId fields to strings."""
    if isinstance(obj, dict):
        return {key: convert_objectid(value) for key, value in obj.items()}
    elif isinstance(obj, list):
        return [convert_objectid(item) for item in obj]
    elif isinstance(obj, PydanticObjectId):
        return str(obj)
    return obj


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def build_file_response(ref) -> Dict[str, Any]:
    return {
        "fileId": ref.file_id,
        "fileName": ref.file_name,
        "originalName": ref.original_name,
        "filePath": ref.file_path,
        "storageKey": ref.storage_key,
        "fileType": ref.file_type,
        "fileSize": ref.file_size,
        "folder": ref.folder.value,
        "isPaymentReceipt": ref.is_payment_receipt,
        "uploadedAt": _iso(ref.uploaded_at),
    }


def build_certificate_response(certificate) -> Optional[Dict[str, Any]]:
    if certificate is None:
        return None
    return {
        "fileName": certificate.file_name,
        "filePath": certificate.file_path,
        "storageKey": certificate.storage_key,
        "folder": certificate.folder.value,
        "contentType": certificate.content_type,
        "fileSize": certificate.file_size,
        "generatedAt": _iso(certificate.generated_at),
        "downloadCount": certificate.download_count,
        "lastDownloaded": _iso(certificate.last_downloaded),
    }


def build_payment_response(payment) -> Optional[Dict[str, Any]]:
    if payment is None:
        return None
    return {
        "id": str(payment.id),
        "applicationId": payment.application_id,
        "method": payment.method.value,
        "status": payment.status.value,
        "amount": payment.amount,
        "currency": payment.currency,
        "utrNumber": payment.utr_number,
        "orderId": payment.order_id,
        "paymentId": payment.gateway_payment_id,
        "paidAt": _iso(payment.paid_at),
        "createdAt": _iso(payment.created_at),
    }


def build_application_response(application) -> Dict[str, Any]:
    return {
        "_id": str(application.id),
        "applicationId": application.application_id,
        "applicantId": str(application.applicant_id),
        "documentType": application.document_type.value,
        "status": application.status.value,
        "formDataModel": application.form_data_model,
        "formDataRef": str(application.form_data_ref),
        "uploadedFiles": [build_file_response(ref) for ref in application.uploaded_files],
        "generatedCertificate": build_certificate_response(application.generated_certificate),
        "paymentRef": str(application.payment_ref) if application.payment_ref else None,
        "adminRemarks": application.admin_remarks,
        "reviewedAt": _iso(application.reviewed_at),
        "reviewedBy": str(application.reviewed_by) if application.reviewed_by else None,
        "createdAt": _iso(application.created_at),
        "updatedAt": _iso(application.updated_at),
    }


def build_form_data_response(record) -> Optional[Dict[str, Any]]:
    if record is None:
        return None
    data = record.model_dump(mode="json", exclude={"revision_id"})
    data["id"] = str(record.id)
    return convert_objectid(data)


def build_application_details_response(details: Dict[str, Any]) -> Dict[str, Any]:
    response = build_application_response(details["application"])
    response["formData"] = build_form_data_response(details["form_data"])
    response["paymentDetails"] = build_payment_response(details["payment"])
    return response


def build_application_list_response(result: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "applications": [build_application_response(a) for a in result["applications"]],
        "pagination": result["pagination"],
    }


def build_notification_response(notification) -> Dict[str, Any]:
    return {
        "id": str(notification.id),
        "applicationId": str(notification.application_id) if notification.application_id else None,
        "type": notification.type.value,
        "title": notification.title,
        "message": notification.message,
        "isRead": notification.is_read,
        "emailSent": notification.email_sent,
        "createdAt": _iso(notification.created_at),
    }


def build_user_response(user) -> Dict[str, Any]:
    return {
        "id": str(user.id),
        "email": user.email,
        "full_name": user.full_name,
        "role": user.role.value,
        "is_active": user.is_active,
        "created_at": user.created_at,
        "applications_submitted": len(user.applications_submitted),
        "applications_pending": len(user.applications_pending),
        "applications_approved": len(user.applications_approved),
        "applications_rejected": len(user.applications_rejected),
    }
