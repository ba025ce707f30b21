"""Local storage for chat attachments, served back under /uploads."""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass
from pathlib import Path

from fastapi.concurrency import run_in_threadpool

from core.errors import PayloadTooLargeError, UpstreamProviderError

LOGGER = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


@dataclass(frozen=True)
class StoredFile:
    url: str
    filename: str
    path: Path


def safe_filename(original: str) -> str:
    name = Path(original or "").name
    name = _UNSAFE_CHARS.sub("_", name).strip("._")
    return name or "upload"


class StaticFileStore:
    def __init__(self, directory: Path, *, url_prefix: str = "/uploads", max_bytes: int | None = None) -> None:
        self._directory = directory
        self._url_prefix = url_prefix.rstrip("/")
        self.max_bytes = max_bytes

    def _unique_name(self, original: str) -> str:
        stem = f"{int(time.time() * 1000)}-{safe_filename(original)}"
        candidate = stem
        counter = 1
        while (self._directory / candidate).exists():
            candidate = f"{counter}-{stem}"
            counter += 1
        return candidate

    def _write(self, original: str, content: bytes) -> Path:
        self._directory.mkdir(parents=True, exist_ok=True)
        path = self._directory / self._unique_name(original)
        path.write_bytes(content)
        return path

    async def save(self, original_filename: str, content: bytes) -> StoredFile:
        if self.max_bytes is not None and len(content) > self.max_bytes:
            LOGGER.warning("Rejected upload %s: larger than %d bytes", original_filename, self.max_bytes)
            raise PayloadTooLargeError(
                f"Upload exceeds {self.max_bytes} bytes", details={"max_bytes": self.max_bytes}
            )
        try:
            path = await run_in_threadpool(self._write, original_filename, content)
        except OSError as exc:
            LOGGER.error("Storing upload %s failed: %s", original_filename, exc)
            raise UpstreamProviderError("File upload failed", details={"message": str(exc)}) from exc

        LOGGER.info("Stored upload %s as %s (%d bytes)", original_filename, path.name, len(content))
        return StoredFile(
            url=f"{self._url_prefix}/{path.name}",
            filename=original_filename,
            path=path,
        )
