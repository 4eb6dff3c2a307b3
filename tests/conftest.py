import os
from uuid import uuid4

os.environ.setdefault("JWT_SECRET_KEY", "unit-test-secret-key-0123456789")
os.environ.setdefault("MONGODB_DB_NAME", "certificates_test")
os.environ["MONGODB_TRANSACTIONS"] = "false"
os.environ["SMTP_HOST"] = ""
os.environ["RAZORPAY_KEY_ID"] = "rzp_test_key"
os.environ["RAZORPAY_KEY_SECRET"] = "rzp_test_secret"

import pytest
from beanie import init_beanie
from mongomock_motor import AsyncMongoMockClient

from app.database.models import DOCUMENT_MODELS, User
from app.schemas.application_schema import UserRole
from app.services.application_service import ApplicationService
from app.services.notification_service import NotificationService
from app.services.storage_service import StorageService
from app.workers.notification_dispatcher import NotificationDispatcher
from tests.factories import FakeSupabase


@pytest.fixture
async def db():
    client = AsyncMongoMockClient()
    database = client[f"test_{uuid4().hex}"]
    await init_beanie(database=database, document_models=DOCUMENT_MODELS)
    yield database


@pytest.fixture
def fake_supabase():
    return FakeSupabase()


@pytest.fixture
def storage(fake_supabase):
    service = StorageService(client=fake_supabase, bucket="test-bucket")
    service.retry_base_delay = 0
    return service


@pytest.fixture
async def service(storage):
    dispatcher = NotificationDispatcher()
    app_service = ApplicationService(storage=storage, notifier=NotificationService(), dispatcher=dispatcher)
    yield app_service
    await dispatcher.drain()


async def _create_user(email: str, role: UserRole) -> User:
    user = User(email=email, full_name=email.split("@")[0].title(), hashed_password="not-a-real-hash", role=role)
    await user.insert()
    return user


@pytest.fixture
async def applicant(db):
    return await _create_user("citizen@example.com", UserRole.CLIENT)


@pytest.fixture
async def other_user(db):
    return await _create_user("neighbour@example.com", UserRole.CLIENT)


@pytest.fixture
async def admin(db):
    return await _create_user("admin@example.com", UserRole.ADMIN)


