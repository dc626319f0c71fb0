"""
External media storage for avatars, cover images, thumbnails and video files.

Incoming multipart files are staged on local disk first, handed to the
configured store, and the staged copy is removed whatever the outcome.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import logging
import os
from pathlib import Path
import shutil
from typing import Optional
import uuid

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from fastapi import UploadFile

from config import Settings
from services.errors import ApiError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024
IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp", ".avif", ".bmp"}
VIDEO_EXTENSIONS = {".mp4", ".mov", ".m4v", ".webm", ".avi", ".mkv"}


@dataclass(frozen=True)
class StoredMedia:
    url: str
    public_id: str
    duration: Optional[float] = None


class MediaStoreError(Exception):
    """Raised by a store when an upload or delete cannot be completed."""


class MediaStore:
    """Interface for the object store holding uploaded media."""

    async def upload(self, local_path: Path, kind: str) -> StoredMedia:
        raise NotImplementedError

    async def delete(self, public_id: str, kind: str) -> None:
        raise NotImplementedError


class LocalMediaStore(MediaStore):
    """Copies media under ``root``; files are served from ``url_prefix``."""

    def __init__(self, root: str, url_prefix: str):
        self.root = Path(root)
        self.url_prefix = "/" + url_prefix.strip("/")

    def _copy(self, source: Path, destination: Path) -> None:
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source, destination)

    async def upload(self, local_path: Path, kind: str) -> StoredMedia:
        public_id = f"{kind}/{uuid.uuid4().hex}{local_path.suffix.lower()}"
        try:
            await asyncio.to_thread(self._copy, local_path, self.root / public_id)
        except OSError as exc:
            raise MediaStoreError(str(exc)) from exc
        return StoredMedia(url=f"{self.url_prefix}/{public_id}", public_id=public_id)

    async def delete(self, public_id: str, kind: str) -> None:
        target = (self.root / public_id).resolve()
        if self.root.resolve() not in target.parents:
            raise MediaStoreError(f"Refusing to delete outside media root: {public_id}")
        await asyncio.to_thread(target.unlink, True)


class S3MediaStore(MediaStore):
    """S3-compatible object storage through boto3."""

    def __init__(self, settings: Settings):
        self.bucket = settings.S3_BUCKET
        self.endpoint_url = settings.S3_ENDPOINT_URL or None
        self.access_key = settings.S3_ACCESS_KEY_ID or None
        self.secret_key = settings.S3_SECRET_ACCESS_KEY or None
        self.region = settings.S3_REGION or None
        self.public_base_url = settings.S3_PUBLIC_BASE_URL.rstrip("/")
        self._client = None

    def _get_client(self):
        if self._client is None:
            self._client = boto3.client(
                "s3",
                endpoint_url=self.endpoint_url,
                aws_access_key_id=self.access_key,
                aws_secret_access_key=self.secret_key,
                region_name=self.region,
            )
        return self._client

    def _public_url(self, key: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url}/{key}"
        if self.endpoint_url:
            return f"{self.endpoint_url.rstrip('/')}/{self.bucket}/{key}"
        return f"https://{self.bucket}.s3.amazonaws.com/{key}"

    async def upload(self, local_path: Path, kind: str) -> StoredMedia:
        key = f"{kind}/{uuid.uuid4().hex}{local_path.suffix.lower()}"
        try:
            await asyncio.to_thread(self._get_client().upload_file, str(local_path), self.bucket, key)
        except (BotoCoreError, ClientError) as exc:
            raise MediaStoreError(str(exc)) from exc
        logger.info("media_uploaded store=s3 bucket=%s key=%s", self.bucket, key)
        return StoredMedia(url=self._public_url(key), public_id=key)

    async def delete(self, public_id: str, kind: str) -> None:
        try:
            await asyncio.to_thread(self._get_client().delete_object, Bucket=self.bucket, Key=public_id)
        except (BotoCoreError, ClientError) as exc:
            raise MediaStoreError(str(exc)) from exc


def build_media_store(settings: Settings) -> MediaStore:
    if settings.MEDIA_STORE == "s3":
        return S3MediaStore(settings)
    return LocalMediaStore(settings.MEDIA_ROOT, settings.MEDIA_URL_PREFIX)


def _sanitize_filename(filename: str, fallback: str) -> str:
    base = os.path.basename(filename or fallback)
    safe = "".join(ch if ch.isalnum() or ch in ("-", "_", ".") else "_" for ch in base)
    return safe or fallback


async def stage_upload(file: UploadFile, tmp_dir: str, max_bytes: int) -> Path:
    """Write an incoming multipart file to ``tmp_dir`` in chunks, enforcing ``max_bytes``."""
    staging_dir = Path(tmp_dir)
    staging_dir.mkdir(parents=True, exist_ok=True)
    filename = _sanitize_filename(file.filename or "", "upload.bin")
    destination = staging_dir / f"{uuid.uuid4().hex}_{filename}"

    total_size = 0
    try:
        with destination.open("wb") as out:
            while True:
                chunk = await file.read(CHUNK_SIZE)
                if not chunk:
                    break
                total_size += len(chunk)
                if total_size > max_bytes:
                    raise ApiError(413, f"File too large. Max upload size is {max_bytes // (1024 * 1024)}MB.")
                out.write(chunk)
    except BaseException:
        destination.unlink(missing_ok=True)
        raise
    finally:
        await file.close()

    if total_size == 0:
        destination.unlink(missing_ok=True)
        raise ApiError(400, f"Uploaded file {filename} is empty")
    return destination


def _check_extension(file: UploadFile, kind: str, label: str) -> None:
    suffix = Path(file.filename or "").suffix.lower()
    content_type = (file.content_type or "").lower()
    allowed = VIDEO_EXTENSIONS if kind == "video" else IMAGE_EXTENSIONS
    prefix = "video/" if kind == "video" else "image/"
    if suffix not in allowed and not content_type.startswith(prefix):
        raise ApiError(400, f"Unsupported file type for {label}")


async def store_upload(
    store: MediaStore,
    file: UploadFile,
    *,
    kind: str,
    label: str,
    settings: Settings,
) -> StoredMedia:
    """Stage ``file`` locally, push it to ``store`` within the upload timeout, then drop the staged copy."""
    _check_extension(file, kind, label)
    staged = await stage_upload(file, settings.UPLOAD_TMP_DIR, settings.MAX_UPLOAD_BYTES)
    try:
        return await asyncio.wait_for(store.upload(staged, kind), timeout=settings.UPLOAD_TIMEOUT_SECONDS)
    except asyncio.TimeoutError as exc:
        logger.error("media_upload_timeout label=%s timeout=%ss", label, settings.UPLOAD_TIMEOUT_SECONDS)
        raise ApiError(500, f"Failed to upload {label}: upload timed out") from exc
    except MediaStoreError as exc:
        logger.error("media_upload_failed label=%s error=%s", label, exc)
        raise ApiError(500, f"Failed to upload {label}") from exc
    finally:
        staged.unlink(missing_ok=True)


async def discard_media(store: MediaStore, public_id: Optional[str], kind: str) -> None:
    """Best-effort delete; failures are logged and never raised."""
    if not public_id:
        return
    try:
        await store.delete(public_id, kind)
    except Exception as exc:
        logger.warning("media_cleanup_failed public_id=%s kind=%s error=%s", public_id, kind, exc)
