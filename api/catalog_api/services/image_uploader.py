"""Image uploaders for project thumbnails.

CloudinaryUploader posts a signed upload to Cloudinary's REST API.
LocalImageUploader writes into a directory served under a public base URL and is
used when Cloudinary credentials are not configured.
"""

from __future__ import annotations

import hashlib
import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol
from uuid import uuid4

import httpx

from catalog_api.models.media import ImageFile, UploadedImage
from catalog_api.models.result import ErrorKind, OperationResult, Success, failure

log = logging.getLogger(__name__)

_ALLOWED_SUFFIXES = {".png", ".jpg", ".jpeg", ".gif", ".webp", ".svg"}


class ImageUploader(Protocol):
    def upload(self, image: ImageFile, folder: str) -> OperationResult[UploadedImage]:
        ...


def _check_image(image: ImageFile) -> Optional[str]:
    if not image.content:
        return "Image file is empty"
    suffix = Path(image.filename or "").suffix.lower()
    if suffix and suffix not in _ALLOWED_SUFFIXES:
        return f"Unsupported image type '{suffix}'"
    if image.content_type and not image.content_type.startswith("image/"):
        return f"Unsupported content type '{image.content_type}'"
    return None


@dataclass(frozen=True)
class CloudinaryConfig:
    cloud_name: str
    api_key: str
    api_secret: str
    upload_base_url: str = "https://api.cloudinary.com/v1_1"
    timeout_seconds: float = 30.0

    @classmethod
    def from_env(cls) -> CloudinaryConfig:
        required = {
            "CLOUDINARY_CLOUD_NAME": (os.getenv("CLOUDINARY_CLOUD_NAME") or "").strip(),
            "CLOUDINARY_API_KEY": (os.getenv("CLOUDINARY_API_KEY") or "").strip(),
            "CLOUDINARY_API_SECRET": (os.getenv("CLOUDINARY_API_SECRET") or "").strip(),
        }
        missing = [name for name, value in required.items() if not value]
        if missing:
            joined = ",".join(sorted(missing))
            raise ValueError(f"missing_required_env:{joined}")

        return cls(
            cloud_name=required["CLOUDINARY_CLOUD_NAME"],
            api_key=required["CLOUDINARY_API_KEY"],
            api_secret=required["CLOUDINARY_API_SECRET"],
        )


def cloudinary_signature(params: dict[str, str], api_secret: str) -> str:
    """SHA-1 of the sorted ``key=value`` pairs joined by ``&``, followed by the secret."""
    to_sign = "&".join(f"{k}={params[k]}" for k in sorted(params) if params[k] != "")
    return hashlib.sha1(f"{to_sign}{api_secret}".encode("utf-8")).hexdigest()


class CloudinaryUploader:
    def __init__(self, config: CloudinaryConfig) -> None:
        self._config = config

    @property
    def upload_url(self) -> str:
        return f"{self._config.upload_base_url.rstrip('/')}/{self._config.cloud_name}/image/upload"

    def upload(self, image: ImageFile, folder: str) -> OperationResult[UploadedImage]:
        problem = _check_image(image)
        if problem:
            return failure(ErrorKind.UPLOAD_FAILURE, problem)

        params = {"folder": folder, "timestamp": str(int(time.time()))}
        data = {
            **params,
            "api_key": self._config.api_key,
            "signature": cloudinary_signature(params, self._config.api_secret),
        }
        files = {"file": (image.filename, image.content, image.content_type or "application/octet-stream")}
        try:
            with httpx.Client(timeout=self._config.timeout_seconds) as client:
                r = client.post(self.upload_url, data=data, files=files)
        except httpx.HTTPError as exc:
            log.debug("cloudinary_upload_transport_error folder=%s error=%s", folder, exc)
            return failure(ErrorKind.UPLOAD_FAILURE, "Failed to upload image.")

        if r.status_code >= 400:
            try:
                error = r.json().get("error")
                message = str(error.get("message") or "") if isinstance(error, dict) else ""
            except (AttributeError, ValueError):
                message = ""
            log.debug("cloudinary_upload_rejected status=%s message=%s", r.status_code, message)
            return failure(ErrorKind.UPLOAD_FAILURE, message or "Failed to upload image.")

        try:
            body = r.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            log.debug("cloudinary_upload_unreadable status=%s body=%s", r.status_code, r.text[:200])
            return failure(ErrorKind.UPLOAD_FAILURE, "Failed to upload image.")
        url = body.get("secure_url") or body.get("url")
        if not url:
            return failure(ErrorKind.UPLOAD_FAILURE, "Upload response did not include a URL")
        return Success(UploadedImage(url=url, public_id=body.get("public_id")))


class LocalImageUploader:
    """Stores images under ``root/<folder>/`` and returns ``base_url/<folder>/<file>``."""

    def __init__(self, root: str | Path = "uploads", base_url: str = "/uploads") -> None:
        self._root = Path(root)
        self._base_url = base_url.rstrip("/")

    def upload(self, image: ImageFile, folder: str) -> OperationResult[UploadedImage]:
        problem = _check_image(image)
        if problem:
            return failure(ErrorKind.UPLOAD_FAILURE, problem)

        suffix = Path(image.filename or "").suffix.lower()
        safe_folder = "/".join(p for p in folder.replace("\\", "/").split("/") if p not in {"", ".", ".."})
        public_id = f"{safe_folder}/{uuid4().hex}" if safe_folder else uuid4().hex
        target = self._root / f"{public_id}{suffix}"
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(image.content)
        except OSError as exc:
            log.warning("local_upload_failed path=%s error=%s", target, exc)
            return failure(ErrorKind.UPLOAD_FAILURE, "Failed to upload image.")
        log.debug("local_upload_stored path=%s", target)
        return Success(UploadedImage(url=f"{self._base_url}/{public_id}{suffix}", public_id=public_id))


def uploader_from_env() -> ImageUploader:
    """Cloudinary when fully configured, otherwise the local directory uploader."""
    try:
        return CloudinaryUploader(CloudinaryConfig.from_env())
    except ValueError as exc:
        log.info("image_uploader_local_fallback reason=%s", exc)
    return LocalImageUploader(
        root=os.getenv("IMAGE_UPLOAD_DIR", "uploads"),
        base_url=os.getenv("IMAGE_PUBLIC_BASE_URL", "/uploads"),
    )
