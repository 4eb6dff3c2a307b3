import os
import re
from dataclasses import dataclass
from typing import Optional

from fastapi import UploadFile

GENERIC_TYPES = {"", "application/octet-stream", "text/plain", "binary/octet-stream"}

EXTENSION_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".pdf": "application/pdf",
    ".doc": "application/msword",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}


@dataclass
class IncomingFile:
    """An uploaded file read fully into memory, with its resolved MIME type."""

    filename: str
    content_type: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)

    @classmethod
    async def from_upload(cls, upload: UploadFile) -> "IncomingFile":
        await upload.seek(0)
        content = await upload.read()
        filename = os.path.basename(upload.filename or "upload")
        return cls(
            filename=filename,
            content_type=resolve_content_type(upload.content_type, content, filename),
            content=content,
        )


# Resolves the MIME type, sniffing magic bytes when the client sent a generic type
def resolve_content_type(declared: Optional[str], content: bytes, filename: str) -> str:
    content_type = (declared or "").split(";")[0].strip().lower()
    if content_type not in GENERIC_TYPES:
        return content_type

    header = content[:12]
    ext = os.path.splitext(filename or "")[1].lower()
    if header.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if header.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if header.startswith(b"%PDF"):
        return "application/pdf"
    if header.startswith(b"\xd0\xcf\x11\xe0"):
        return "application/msword"
    if header.startswith(b"PK\x03\x04") and ext == ".docx":
        return EXTENSION_TYPES[".docx"]
    return EXTENSION_TYPES.get(ext, "application/octet-stream")


def safe_filename(filename: str) -> str:
    name = os.path.basename(filename or "").strip() or "file"
    name = re.sub(r"[^A-Za-z0-9._-]+", "_", name)
    return name[-120:]
