from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from fastapi import UploadFile

from portal.core.exceptions import ValidationError
from portal.core.formatting import image_filename
from portal.integrations.backend import BackendClient
from portal.schemas.user import UserProfile

logger = logging.getLogger(__name__)


@dataclass
class PhotoUpload:
    filename: str
    content: bytes
    content_type: str

    def as_tuple(self) -> tuple[str, bytes, str]:
        return (self.filename, self.content, self.content_type)


def _too_large(filename: str, max_bytes: int) -> ValidationError:
    limit_mb = max_bytes / (1024 * 1024)
    return ValidationError(f"{filename} is larger than {limit_mb:g}MB")


async def read_uploads(files: Sequence[UploadFile], max_bytes: Optional[int] = None) -> List[PhotoUpload]:
    """
    Buffer each upload for forwarding.

    With `max_bytes` set, a file whose declared size is over the limit is
    rejected unread, and at most `max_bytes + 1` bytes are read from the rest.
    """
    uploads: List[PhotoUpload] = []
    for upload in files:
        if not upload.filename:
            continue
        if max_bytes is None:
            content = await upload.read()
        else:
            if upload.size is not None and upload.size > max_bytes:
                raise _too_large(upload.filename, max_bytes)
            content = await upload.read(max_bytes + 1)
            if len(content) > max_bytes:
                raise _too_large(upload.filename, max_bytes)
        uploads.append(
            PhotoUpload(
                filename=upload.filename,
                content=content,
                content_type=upload.content_type or "application/octet-stream",
            )
        )
    return uploads


def check_uploads(
    uploads: Sequence[PhotoUpload],
    existing: int,
    max_images: int,
    max_bytes: int,
) -> None:
    """Reject the batch before it reaches the backend if it breaks the photo rules."""
    if not uploads:
        raise ValidationError("Please choose at least one photo to upload")
    if existing + len(uploads) > max_images:
        raise ValidationError(
            f"Maximum {max_images} photos allowed. You have {existing} photos, "
            f"trying to add {len(uploads)} more"
        )
    for upload in uploads:
        if not upload.content_type.startswith("image/"):
            raise ValidationError(f"{upload.filename} is not an image")
        if len(upload.content) > max_bytes:
            raise _too_large(upload.filename, max_bytes)


async def upload_photos(
    backend: BackendClient,
    token: str,
    user: UserProfile,
    uploads: Sequence[PhotoUpload],
    max_images: int,
    max_bytes: int,
) -> List[str]:
    check_uploads(uploads, len(user.images), max_images, max_bytes)
    body = await backend.upload_images(token, [upload.as_tuple() for upload in uploads])
    urls = list(body.get("imageUrls") or [])
    logger.info("Uploaded %s photo(s) for user %s", len(urls), user.id)
    return urls


async def delete_photo(backend: BackendClient, token: str, user: UserProfile, image_url: str) -> List[str]:
    """Remove one photo and return the remaining list in its original order."""
    if image_url not in user.images:
        raise ValidationError("Image not found in your photos")
    await backend.delete_image(token, image_url, image_filename(image_url))
    remaining = [url for url in user.images if url != image_url]
    logger.info("Deleted photo for user %s, %s remaining", user.id, len(remaining))
    return remaining
