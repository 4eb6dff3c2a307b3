import pytest

from app.core.exceptions import UpstreamError, ValidationError
from app.schemas.application_schema import StorageFolder
from app.services import storage_service as storage_module
from app.utils.file_utils import IncomingFile
from tests.factories import PDF_BYTES, PNG_BYTES


class FakeClock:
    def __init__(self, start=1000.0):
        self.now = start

    def monotonic(self):
        return self.now

    def time(self):
        return self.now


def png(name="id card.png"):
    return IncomingFile(filename=name, content_type="image/png", content=PNG_BYTES)


async def test_upload_builds_folder_keys(storage, fake_supabase):
    ref = await storage.upload_file(png(), StorageFolder.UNVERIFIED)

    assert ref.storage_key.startswith("unverified/")
    assert ref.storage_key.endswith("-id_card.png")
    assert ref.original_name == "id card.png"
    assert ref.file_size == len(PNG_BYTES)
    assert ref.folder == StorageFolder.UNVERIFIED
    assert fake_supabase.objects[ref.storage_key]["options"] == {"content-type": "image/png"}


async def test_upload_retries_transient_failures(storage, fake_supabase):
    fake_supabase.fail_uploads = 2
    ref = await storage.upload_file(png(), "unverified")
    assert ref.storage_key in fake_supabase.objects


async def test_upload_gives_up_after_three_attempts(storage, fake_supabase):
    fake_supabase.fail_uploads = 3
    with pytest.raises(UpstreamError):
        await storage.upload_file(png(), "unverified")
    assert fake_supabase.objects == {}


async def test_batch_upload_cleans_up_on_failure(storage, fake_supabase, monkeypatch):
    calls = []
    original = storage.upload_file

    async def flaky_upload(file, folder):
        calls.append(file.filename)
        if len(calls) == 2:
            raise UpstreamError("File upload failed, please try again later")
        return await original(file, folder)

    monkeypatch.setattr(storage, "upload_file", flaky_upload)

    with pytest.raises(UpstreamError):
        await storage.upload([png("a.png"), png("b.png")], StorageFolder.UNVERIFIED)
    assert fake_supabase.objects == {}


async def test_invalid_folder(storage):
    with pytest.raises(ValidationError):
        await storage.upload_file(png(), "archive")
    with pytest.raises(ValidationError):
        await storage.list_by_folder("archive")


async def test_move_keeps_file_name(storage, fake_supabase):
    ref = await storage.upload_file(png(), StorageFolder.UNVERIFIED)

    result = await storage.move_to_folder(ref.storage_key, StorageFolder.VERIFIED)

    assert result["oldKey"] == ref.storage_key
    assert result["newKey"] == "verified/" + ref.file_name
    assert result["folder"] == "verified"
    assert result["newKey"] in fake_supabase.objects
    assert ref.storage_key not in fake_supabase.objects


async def test_move_failure_is_upstream_error(storage, fake_supabase):
    ref = await storage.upload_file(png(), StorageFolder.UNVERIFIED)
    fake_supabase.fail_moves = {ref.storage_key}
    with pytest.raises(UpstreamError):
        await storage.move_to_folder(ref.storage_key, StorageFolder.VERIFIED)


async def test_signed_urls_are_cached_per_key_and_ttl(storage, fake_supabase):
    first = await storage.signed_url("verified/1-abcdef12-receipt.png", 3600)
    second = await storage.signed_url("verified/1-abcdef12-receipt.png", 3600)
    other_ttl = await storage.signed_url("verified/1-abcdef12-receipt.png", 60)

    assert first["url"] == second["url"]
    assert other_ttl["url"] != first["url"]
    assert other_ttl["expiresIn"] == 60
    assert len(fake_supabase.signed) == 2


async def test_signed_url_is_regenerated_after_expiry(storage, fake_supabase, monkeypatch):
    clock = FakeClock()
    monkeypatch.setattr(storage_module, "time", clock)

    first = await storage.signed_url("certificate/1-abcdef12-cert.pdf", 120)
    clock.now += 60
    cached = await storage.signed_url("certificate/1-abcdef12-cert.pdf", 120)
    clock.now += 61
    fresh = await storage.signed_url("certificate/1-abcdef12-cert.pdf", 120)

    assert cached["url"] == first["url"]
    assert cached["expiresIn"] == 60
    assert fresh["url"] != first["url"]
    assert len(fake_supabase.signed) == 2


async def test_moving_a_file_drops_its_cached_url(storage, fake_supabase):
    ref = await storage.upload_file(png(), StorageFolder.UNVERIFIED)
    await storage.signed_url(ref.storage_key)

    await storage.move_to_folder(ref.storage_key, StorageFolder.VERIFIED)

    assert storage._url_cache == {}


async def test_list_all_folders(storage):
    receipt = await storage.upload_file(png("receipt.png"), StorageFolder.UNVERIFIED)
    certificate = await storage.upload_file(
        IncomingFile(filename="birth.pdf", content_type="application/pdf", content=PDF_BYTES),
        StorageFolder.CERTIFICATE,
    )

    files = await storage.list_by_folder("all")

    by_key = {f["key"]: f for f in files}
    assert set(by_key) == {receipt.storage_key, certificate.storage_key}
    assert by_key[receipt.storage_key]["originalName"] == "receipt.png"
    assert by_key[certificate.storage_key]["folder"] == "certificate"

    only_certificates = await storage.list_by_folder("certificate")
    assert [f["key"] for f in only_certificates] == [certificate.storage_key]


def test_original_name_from_key():
    assert storage_module.StorageService.original_name_from_key("verified/1700000000000-0a1b2c3d-aadhaar.pdf") == "aadhaar.pdf"
    assert storage_module.StorageService.original_name_from_key("verified/plain.pdf") == "plain.pdf"


async def test_delete_many_is_best_effort(storage, fake_supabase):
    ref = await storage.upload_file(png(), StorageFolder.UNVERIFIED)
    await storage.delete_many([ref.storage_key, "unverified/missing.png"])
    assert fake_supabase.objects == {}
