"""
Local filesystem storage provider.
Saves log attachments under ``settings.storage_dir``.
"""
import os
import shutil
from datetime import datetime
from pathlib import Path
from typing import BinaryIO, Optional

import structlog
from slugify import slugify

from ..config import settings
from .provider import StorageProvider


logger = structlog.get_logger(__name__)


def attachment_key(log_id: str, original_name: str, now: Optional[datetime] = None) -> str:
    now = now or datetime.utcnow()
    stem, ext = os.path.splitext(original_name or "upload")
    safe_name = slugify(stem) or "file"
    safe_ext = slugify(ext.lstrip("."))
    ext_part = f".{safe_ext}" if safe_ext else ""
    return f"logs/{now.strftime('%Y')}/{log_id}/{now.strftime('%Y-%m-%d')}_{safe_name}{ext_part}"


class LocalStorageProvider(StorageProvider):
    name = "local"

    def __init__(self, base_dir: Optional[str] = None):
        self.base_dir = Path(base_dir or settings.storage_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def _get_path(self, key: str) -> Path:
        # Keys are relative; strip anything that could climb out of base_dir
        clean_key = key.replace("\\", "/").lstrip("/")
        parts = [p for p in clean_key.split("/") if p not in ("", ".", "..")]
        return self.base_dir.joinpath(*parts)

    def save(self, stream: BinaryIO, key: str) -> int:
        path = self._get_path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "wb") as f:
            shutil.copyfileobj(stream, f)
        size = path.stat().st_size
        logger.info("attachment_saved", key=key, size_bytes=size)
        return size

    def open(self, key: str) -> BinaryIO:
        return open(self._get_path(key), "rb")

    def exists(self, key: str) -> bool:
        return self._get_path(key).exists()

    def delete(self, key: str) -> None:
        path = self._get_path(key)
        try:
            if path.exists():
                path.unlink()
        except OSError as e:
            logger.warning("attachment_delete_failed", key=key, error=str(e))


def get_storage() -> StorageProvider:
    return LocalStorageProvider()
