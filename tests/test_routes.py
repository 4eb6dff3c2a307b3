from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from app.core.auth_dependencies import get_current_user
from app.core.exceptions import InvalidStateError
from app.database.models import Application
from app.schemas.application_schema import ApplicationStatus, DocumentType
from app.services.application_service import get_application_service
from beanie import PydanticObjectId
from main import app
from tests.factories import PNG_BYTES, VALID_FIELDS

CLIENT_USER = {"id": str(PydanticObjectId()), "email": "citizen@example.com", "full_name": "Citizen", "role": "client"}
ADMIN_USER = {"id": str(PydanticObjectId()), "email": "admin@example.com", "full_name": "Admin", "role": "admin"}


class RecordingService:
    """Stands in for ApplicationService and records what the routes pass on."""

    def __init__(self):
        self.calls = []

    def _application(self, status=ApplicationStatus.PENDING):
        return Application.model_construct(
            id=PydanticObjectId(),
            application_id="BIRTH-000001-abcdef",
            applicant_id=PydanticObjectId(CLIENT_USER["id"]),
            document_type=DocumentType.BIRTH_CERTIFICATE,
            status=status,
            form_data_ref=PydanticObjectId(),
            form_data_model="BirthCertificate",
            created_at=datetime(2024, 1, 1),
            updated_at=datetime(2024, 1, 1),
        )

    async def submit(self, document_type, fields, receipt, documents, requester):
        self.calls.append(("submit", document_type, dict(fields), receipt, documents, requester))
        return self._application()

    async def review(self, application_id, status, remarks, requester):
        self.calls.append(("review", application_id, status, remarks))
        if application_id == "already-reviewed":
            raise InvalidStateError("Application is already reviewed (status: approved)")
        return self._application(ApplicationStatus(status))

    async def fetch_all_for_admin(self, page, limit, requester):
        self.calls.append(("admin_list", page, limit))
        return {"applications": [self._application()], "pagination": {"page": page, "limit": limit, "total": 1, "totalPages": 1}}


@pytest.fixture
def fake_service():
    return RecordingService()


@pytest.fixture
def client_as(fake_service):
    def _client(user):
        app.dependency_overrides[get_current_user] = lambda: user
        app.dependency_overrides[get_application_service] = lambda: fake_service
        return TestClient(app)

    yield _client
    app.dependency_overrides.clear()


def test_health():
    client = TestClient(app)
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.headers["X-Content-Type-Options"] == "nosniff"


def test_protected_routes_require_a_token():
    client = TestClient(app)
    response = client.get("/applications/admin")
    assert response.status_code == 401
    assert response.json()["error"]["status_code"] == 401


def test_client_cannot_use_admin_routes(client_as, fake_service):
    client = client_as(CLIENT_USER)

    assert client.get("/applications/admin").status_code == 403
    response = client.post("/applications/admin/review/BIRTH-000001-abcdef", json={"status": "approved"})
    assert response.status_code == 403
    assert response.json()["error"]["message"] == "Admin access required"
    assert fake_service.calls == []


def test_admin_listing_is_camel_cased(client_as):
    response = client_as(ADMIN_USER).get("/applications/admin?page=1&limit=5")

    assert response.status_code == 200
    body = response.json()
    assert body["pagination"] == {"page": 1, "limit": 5, "total": 1, "totalPages": 1}
    assert body["applications"][0]["applicationId"] == "BIRTH-000001-abcdef"


def test_review_passes_remarks_through(client_as, fake_service):
    response = client_as(ADMIN_USER).post(
        "/applications/admin/review/BIRTH-000001-abcdef",
        json={"status": "rejected", "adminRemarks": "Blurry receipt"},
    )

    assert response.status_code == 200
    assert fake_service.calls == [("review", "BIRTH-000001-abcdef", "rejected", "Blurry receipt")]


def test_domain_errors_use_the_error_envelope(client_as):
    response = client_as(ADMIN_USER).post("/applications/admin/review/already-reviewed", json={"status": "approved"})

    assert response.status_code == 400
    assert response.json() == {
        "error": {
            "code": "invalid_state",
            "message": "Application is already reviewed (status: approved)",
            "status_code": 400,
        }
    }


def test_submit_forwards_fields_and_files(client_as, fake_service):
    client = client_as(CLIENT_USER)

    response = client.post(
        "/applications/birth-certificate",
        data=VALID_FIELDS["birth_certificate"],
        files=[
            ("paymentReceipt", ("receipt.png", PNG_BYTES, "image/png")),
            ("documents", ("aadhaar.png", PNG_BYTES, "image/png")),
            ("documents", ("ration.png", PNG_BYTES, "image/png")),
        ],
    )

    assert response.status_code == 201
    assert response.json()["application"]["applicationId"] == "BIRTH-000001-abcdef"
    _, document_type, fields, receipt, documents, requester = fake_service.calls[0]
    assert document_type == "birth-certificate"
    assert fields["childName"] == "Aarav Patil"
    assert "paymentReceipt" not in fields
    assert receipt.filename == "receipt.png"
    assert [d.filename for d in documents] == ["aadhaar.png", "ration.png"]
    assert requester == CLIENT_USER


def test_unknown_document_type_is_not_found():
    app.dependency_overrides[get_current_user] = lambda: CLIENT_USER
    try:
        response = TestClient(app).post(
            "/applications/land-record",
            data={"financialYear": "2024-25"},
            files=[("paymentReceipt", ("receipt.png", PNG_BYTES, "image/png"))],
        )
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "not_found"


def test_unknown_route_uses_the_error_envelope():
    response = TestClient(app).get("/nothing-here")
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "http_error"
