"""Tests for the Cloudinary and local image uploaders."""

import hashlib

import httpx
import pytest
import respx
from httpx import Response

from catalog_api.models.media import ImageFile
from catalog_api.models.result import ErrorKind
from catalog_api.services.image_uploader import (
    CloudinaryConfig,
    CloudinaryUploader,
    LocalImageUploader,
    cloudinary_signature,
    uploader_from_env,
)

UPLOAD_URL = "https://api.cloudinary.com/v1_1/demo/image/upload"
PNG = ImageFile(filename="cover.png", content=b"\x89PNG\r\n", content_type="image/png")


@pytest.fixture
def cloudinary():
    return CloudinaryUploader(CloudinaryConfig(cloud_name="demo", api_key="key", api_secret="secret"))


def test_cloudinary_signature_sorts_params_and_appends_secret():
    expected = hashlib.sha1(b"folder=projects&timestamp=1700000000secret").hexdigest()

    assert cloudinary_signature({"timestamp": "1700000000", "folder": "projects"}, "secret") == expected


@respx.mock
def test_cloudinary_upload_returns_secure_url(cloudinary):
    route = respx.post(UPLOAD_URL).mock(
        return_value=Response(200, json={"secure_url": "https://res.cloudinary.com/demo/x.png", "public_id": "projects/x"})
    )

    result = cloudinary.upload(PNG, "projects")

    assert result.ok
    assert result.data.url == "https://res.cloudinary.com/demo/x.png"
    assert result.data.public_id == "projects/x"
    body = route.calls[0].request.content
    assert b'name="folder"' in body
    assert b'name="signature"' in body
    assert b'filename="cover.png"' in body


@respx.mock
def test_cloudinary_rejection_is_upload_failure(cloudinary):
    respx.post(UPLOAD_URL).mock(return_value=Response(401, json={"error": {"message": "Invalid Signature"}}))

    result = cloudinary.upload(PNG, "projects")

    assert not result.ok
    assert result.kind == ErrorKind.UPLOAD_FAILURE
    assert result.message == "Invalid Signature"


@respx.mock
def test_cloudinary_transport_error_is_upload_failure(cloudinary):
    respx.post(UPLOAD_URL).mock(side_effect=httpx.ReadTimeout("slow"))

    result = cloudinary.upload(PNG, "projects")

    assert result.kind == ErrorKind.UPLOAD_FAILURE


@respx.mock
@pytest.mark.parametrize(
    "response",
    [
        Response(200, text="<html>gateway</html>"),
        Response(200, json=["unexpected"]),
        Response(500, json={"error": "boom"}),
    ],
)
def test_cloudinary_unreadable_response_is_upload_failure(cloudinary, response):
    respx.post(UPLOAD_URL).mock(return_value=response)

    result = cloudinary.upload(PNG, "projects")

    assert not result.ok
    assert result.kind == ErrorKind.UPLOAD_FAILURE
    assert result.message == "Failed to upload image."


@pytest.mark.parametrize(
    "image",
    [
        ImageFile(filename="empty.png", content=b""),
        ImageFile(filename="notes.txt", content=b"hello"),
        ImageFile(filename="blob", content=b"x", content_type="application/pdf"),
    ],
)
def test_invalid_images_rejected_before_upload(tmp_path, image):
    result = LocalImageUploader(root=tmp_path).upload(image, "projects")

    assert result.kind == ErrorKind.UPLOAD_FAILURE
    assert not any(tmp_path.iterdir())


def test_local_upload_writes_file_under_folder(tmp_path):
    result = LocalImageUploader(root=tmp_path, base_url="/media/").upload(PNG, "../projects")

    assert result.ok
    assert result.data.url.startswith("/media/projects/")
    stored = tmp_path / f"{result.data.public_id}.png"
    assert stored.read_bytes() == PNG.content


def test_image_file_from_path(tmp_path):
    path = tmp_path / "logo.jpg"
    path.write_bytes(b"jpeg")

    image = ImageFile.from_path(path)

    assert image.filename == "logo.jpg"
    assert image.content == b"jpeg"
    assert image.content_type == "image/jpeg"


def test_uploader_from_env_prefers_cloudinary(monkeypatch):
    monkeypatch.setenv("CLOUDINARY_CLOUD_NAME", "demo")
    monkeypatch.setenv("CLOUDINARY_API_KEY", "key")
    monkeypatch.setenv("CLOUDINARY_API_SECRET", "secret")

    uploader = uploader_from_env()

    assert isinstance(uploader, CloudinaryUploader)
    assert uploader.upload_url == UPLOAD_URL


def test_uploader_from_env_falls_back_to_local(monkeypatch, tmp_path):
    monkeypatch.setenv("CLOUDINARY_CLOUD_NAME", "demo")
    monkeypatch.delenv("CLOUDINARY_API_KEY", raising=False)
    monkeypatch.delenv("CLOUDINARY_API_SECRET", raising=False)
    monkeypatch.setenv("IMAGE_UPLOAD_DIR", str(tmp_path))

    assert isinstance(uploader_from_env(), LocalImageUploader)


def test_cloudinary_config_lists_missing_keys(monkeypatch):
    for key in ("CLOUDINARY_CLOUD_NAME", "CLOUDINARY_API_KEY", "CLOUDINARY_API_SECRET"):
        monkeypatch.delenv(key, raising=False)

    with pytest.raises(ValueError, match="missing_required_env:CLOUDINARY_API_KEY,CLOUDINARY_API_SECRET,CLOUDINARY_CLOUD_NAME"):
        CloudinaryConfig.from_env()
