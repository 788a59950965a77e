from __future__ import annotations

import json
from io import BytesIO

import pytest
from fastapi import UploadFile
from starlette.datastructures import Headers

from portal.core.exceptions import ValidationError
from portal.schemas.user import UserProfile
from portal.services.photos import PhotoUpload, check_uploads, delete_photo, read_uploads, upload_photos

MB = 1024 * 1024


def jpeg(name="a.jpg", size=10):
    return PhotoUpload(filename=name, content=b"x" * size, content_type="image/jpeg")


def test_cap_counts_existing_photos():
    check_uploads([jpeg(), jpeg()], existing=3, max_images=5, max_bytes=MB)
    with pytest.raises(ValidationError, match="Maximum 5 photos allowed. You have 4 photos, trying to add 2 more"):
        check_uploads([jpeg(), jpeg()], existing=4, max_images=5, max_bytes=MB)


def test_rejects_non_images_and_oversized_files():
    with pytest.raises(ValidationError, match="not an image"):
        check_uploads([PhotoUpload("doc.pdf", b"x", "application/pdf")], 0, 5, MB)
    with pytest.raises(ValidationError, match="larger than 1MB"):
        check_uploads([jpeg(size=MB + 1)], 0, 5, MB)
    with pytest.raises(ValidationError, match="at least one photo"):
        check_uploads([], 0, 5, MB)


def image_file(size, declared=True):
    return UploadFile(
        file=BytesIO(b"x" * size),
        filename="big.png",
        size=size if declared else None,
        headers=Headers({"content-type": "image/png"}),
    )


@pytest.mark.asyncio
async def test_read_uploads_rejects_declared_oversize_without_reading():
    upload = image_file(50 * MB)
    with pytest.raises(ValidationError, match="big.png is larger than 1MB"):
        await read_uploads([upload], max_bytes=MB)
    assert upload.file.tell() == 0


@pytest.mark.asyncio
async def test_read_uploads_stops_one_byte_past_limit_when_size_unknown():
    upload = image_file(50 * MB, declared=False)
    with pytest.raises(ValidationError, match="larger than 1MB"):
        await read_uploads([upload], max_bytes=MB)
    assert upload.file.tell() == MB + 1


@pytest.mark.asyncio
async def test_read_uploads_keeps_files_within_limit():
    uploads = await read_uploads([image_file(MB, declared=False)], max_bytes=MB)
    assert len(uploads[0].content) == MB
    assert uploads[0].content_type == "image/png"


@pytest.mark.asyncio
async def test_upload_over_cap_issues_no_request(fake_backend, backend):
    user = UserProfile(id="u1", images=[f"https://cdn/{i}.jpg" for i in range(5)])
    with pytest.raises(ValidationError):
        await upload_photos(backend, "tok", user, [jpeg()], max_images=5, max_bytes=MB)
    assert fake_backend.requests == []


@pytest.mark.asyncio
async def test_upload_sends_images_field(fake_backend, backend):
    fake_backend.add("POST", "/auth/upload-images", {"imageUrls": ["https://cdn/new.jpg"]})
    user = UserProfile(id="u1")

    urls = await upload_photos(backend, "tok", user, [jpeg("new.jpg")], max_images=5, max_bytes=MB)

    assert urls == ["https://cdn/new.jpg"]
    request = fake_backend.calls("POST", "/auth/upload-images")[0]
    body = request.content
    assert b'name="images"; filename="new.jpg"' in body
    assert request.headers["content-type"].startswith("multipart/form-data")


@pytest.mark.asyncio
async def test_delete_photo_sends_url_and_filename(fake_backend, backend):
    fake_backend.add("DELETE", "/auth/delete-image", {"message": "deleted"})
    user = UserProfile(id="u1", images=["https://cdn/a.jpg", "https://cdn/u1/b.jpg", "https://cdn/c.jpg"])

    remaining = await delete_photo(backend, "tok", user, "https://cdn/u1/b.jpg")

    assert remaining == ["https://cdn/a.jpg", "https://cdn/c.jpg"]
    request = fake_backend.calls("DELETE", "/auth/delete-image")[0]
    assert json.loads(request.content) == {"imageUrl": "https://cdn/u1/b.jpg", "filename": "b.jpg"}


@pytest.mark.asyncio
async def test_delete_unknown_photo_is_rejected(fake_backend, backend):
    with pytest.raises(ValidationError):
        await delete_photo(backend, "tok", UserProfile(images=["https://cdn/a.jpg"]), "https://cdn/z.jpg")
    assert fake_backend.requests == []
