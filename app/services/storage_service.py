import asyncio
import logging
import re
import time
import uuid
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple, Union

from app.core.config import settings
from app.core.exceptions import UpstreamError, ValidationError
from app.core.supabase_client import get_supabase_client
from app.database.models.application_model import FileReference
from app.schemas.application_schema import StorageFolder
from app.utils.file_utils import IncomingFile, safe_filename

logger = logging.getLogger(__name__)

ORIGINAL_NAME_RE = re.compile(r"^\d+-[0-9a-f]{8}-(.+)$")


class StorageService:
    """Object storage gateway over a single Supabase storage bucket.

    Keys look like ``{folder}/{epoch ms}-{8 hex}-{file name}``. Blocking SDK
    calls run in worker threads. Signed URLs are cached in-process per
    ``key-ttl`` until they expire.
    """

    max_upload_retries = 3
    retry_base_delay = 1.0

    def __init__(self, client=None, bucket: Optional[str] = None):
        self._client = client
        self.bucket = bucket or settings.STORAGE_BUCKET
        self._url_cache: Dict[str, Tuple[str, float, datetime]] = {}

    @property
    def client(self):
        if self._client is None:
            self._client = get_supabase_client()
        return self._client

    def _objects(self):
        return self.client.storage.from_(self.bucket)

    @staticmethod
    def _folder(folder: Union[StorageFolder, str]) -> StorageFolder:
        try:
            return StorageFolder(folder)
        except ValueError:
            raise ValidationError(f"Invalid storage folder '{folder}'")

    @staticmethod
    def build_key(folder: StorageFolder, filename: str) -> str:
        millis = int(time.time() * 1000)
        return f"{folder.value}/{millis}-{uuid.uuid4().hex[:8]}-{safe_filename(filename)}"

    @staticmethod
    def original_name_from_key(key: str) -> str:
        name = key.rsplit("/", 1)[-1]
        match = ORIGINAL_NAME_RE.match(name)
        return match.group(1) if match else name

    # Creates the bucket on startup when it does not exist yet
    async def ensure_bucket(self) -> None:
        try:
            await asyncio.to_thread(self.client.storage.create_bucket, self.bucket, options={"public": False})
            logger.info(f"Created storage bucket: {self.bucket}")
        except Exception as e:
            if "already exists" in str(e).lower() or "duplicate" in str(e).lower():
                logger.info(f"Storage bucket {self.bucket} already exists")
            else:
                logger.warning(f"Bucket creation returned: {e}")

    # Uploads one file with exponential backoff and returns its descriptor
    async def upload_file(self, file: IncomingFile, folder: Union[StorageFolder, str]) -> FileReference:
        folder = self._folder(folder)
        key = self.build_key(folder, file.filename)

        for attempt in range(self.max_upload_retries):
            try:
                await asyncio.to_thread(
                    self._objects().upload,
                    key,
                    file.content,
                    {"content-type": file.content_type},
                )
                break
            except Exception as e:
                if attempt == self.max_upload_retries - 1:
                    logger.error(f"All upload attempts failed for {file.filename} -> {key}: {e}")
                    raise UpstreamError("File upload failed, please try again later") from e
                delay = self.retry_base_delay * (2 ** attempt)
                logger.warning(
                    f"Upload attempt {attempt + 1}/{self.max_upload_retries} failed for {file.filename}: {e}. "
                    f"Retrying in {delay:.1f}s..."
                )
                await asyncio.sleep(delay)

        logger.info(f"Uploaded {file.filename} ({file.size} bytes, {file.content_type}) to {key}")
        return FileReference(
            file_name=key.rsplit("/", 1)[-1],
            original_name=file.filename,
            file_path=key,
            storage_key=key,
            file_type=file.content_type,
            file_size=file.size,
            folder=folder,
        )

    # Uploads files in order; already uploaded objects are removed if one fails
    async def upload(self, files: List[IncomingFile], folder: Union[StorageFolder, str]) -> List[FileReference]:
        uploaded: List[FileReference] = []
        try:
            for file in files:
                uploaded.append(await self.upload_file(file, folder))
        except Exception:
            await self.delete_many([ref.storage_key for ref in uploaded])
            raise
        return uploaded

    # Moves an object into another folder, keeping its file name
    async def move_to_folder(self, key: str, folder: Union[StorageFolder, str]) -> Dict[str, str]:
        folder = self._folder(folder)
        new_key = f"{folder.value}/{key.rsplit('/', 1)[-1]}"
        if new_key == key:
            return {"oldKey": key, "newKey": key, "folder": folder.value, "location": new_key}

        try:
            await asyncio.to_thread(self._objects().move, key, new_key)
        except Exception as e:
            logger.error(f"Failed to move {key} to {new_key}: {e}")
            raise UpstreamError("Failed to move file in storage") from e

        self._forget(key)
        logger.info(f"Moved {key} to {new_key}")
        return {"oldKey": key, "newKey": new_key, "folder": folder.value, "location": new_key}

    # Returns a signed URL for the key, served from cache while still valid
    async def signed_url(self, key: str, ttl: Optional[int] = None) -> Dict[str, object]:
        ttl = ttl or settings.SIGNED_URL_TTL_SECONDS
        cache_key = f"{key}-{ttl}"
        cached = self._url_cache.get(cache_key)
        now = time.monotonic()
        if cached and cached[1] > now:
            url, expires_mono, expires_at = cached
            return {"url": url, "expiresIn": int(expires_mono - now), "expiresAt": expires_at}

        try:
            res = await asyncio.to_thread(self._objects().create_signed_url, key, ttl)
        except Exception as e:
            logger.error(f"Failed to sign URL for {key}: {e}")
            raise UpstreamError("Failed to generate file URL") from e

        url = (res or {}).get("signedURL") or (res or {}).get("signedUrl")
        if not url:
            logger.error(f"Storage returned no signed URL for {key}: {res}")
            raise UpstreamError("Failed to generate file URL")

        expires_at = datetime.utcnow() + timedelta(seconds=ttl)
        self._url_cache[cache_key] = (url, now + ttl, expires_at)
        return {"url": url, "expiresIn": ttl, "expiresAt": expires_at}

    # Lists objects in a folder, or in every folder when folder is "all"
    async def list_by_folder(self, folder: str = "all", limit: int = 100) -> List[Dict[str, object]]:
        folders = list(StorageFolder) if folder == "all" else [self._folder(folder)]
        files = []
        for item in folders:
            try:
                entries = await asyncio.to_thread(
                    self._objects().list,
                    item.value,
                    {"limit": limit, "sortBy": {"column": "created_at", "order": "desc"}},
                )
            except Exception as e:
                logger.error(f"Failed to list folder {item.value}: {e}")
                raise UpstreamError("Failed to list stored files") from e

            for entry in entries or []:
                name = entry.get("name")
                if not name or name == ".emptyFolderPlaceholder":
                    continue
                metadata = entry.get("metadata") or {}
                key = f"{item.value}/{name}"
                files.append({
                    "key": key,
                    "fileName": name,
                    "originalName": self.original_name_from_key(key),
                    "folder": item.value,
                    "size": metadata.get("size"),
                    "contentType": metadata.get("mimetype"),
                    "lastModified": entry.get("updated_at") or entry.get("created_at"),
                })
        return files[:limit]

    async def delete(self, key: str) -> None:
        try:
            await asyncio.to_thread(self._objects().remove, [key])
        except Exception as e:
            logger.error(f"Failed to delete {key}: {e}")
            raise UpstreamError("Failed to delete file") from e
        self._forget(key)
        logger.info(f"Deleted {key} from storage")

    # Best-effort removal used to clean up after a failed write
    async def delete_many(self, keys: List[str]) -> None:
        if not keys:
            return
        logger.info(f"Cleaning up {len(keys)} uploaded files")
        for key in keys:
            try:
                await self.delete(key)
            except UpstreamError:
                logger.error(f"Error cleaning up file {key}")

    def _forget(self, key: str) -> None:
        prefix = f"{key}-"
        for cache_key in [k for k in self._url_cache if k.startswith(prefix)]:
            self._url_cache.pop(cache_key, None)


storage_service = StorageService()


def get_storage_service() -> StorageService:
    return storage_service
