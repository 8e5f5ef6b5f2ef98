"""
Image CDN client.

Books and profiles only keep the URLs the CDN handed out; this module knows
how to remove those images again. Deletion is always best-effort: a failure
is logged and never stops the book or user removal that triggered it.
"""

import re
from typing import Iterable, Optional
from urllib.parse import urlparse

import cloudinary
import cloudinary.uploader
from loguru import logger
from starlette.concurrency import run_in_threadpool

from config import Settings

# .../image/upload/[transformations/][v123/]folder/name.jpg
_VERSION_SEGMENT = re.compile(r"^v\d+$")


def public_id_from_url(url: str) -> Optional[str]:
    """Extract the Cloudinary public id (folder path, no extension) from a delivery URL."""
    path = urlparse(url).path
    if "/upload/" not in path:
        return None
    tail = path.split("/upload/", 1)[1].strip("/")
    segments = [segment for segment in tail.split("/") if segment]

    for index, segment in enumerate(segments):
        if _VERSION_SEGMENT.match(segment):
            segments = segments[index + 1:]
            break

    if not segments:
        return None
    last = segments[-1]
    if "." in last:
        segments[-1] = last.rsplit(".", 1)[0]
    return "/".join(segments)


class ImageStore:
    """Interface of the image CDN as used by the API."""

    async def delete(self, url: str) -> None:
        raise NotImplementedError

    async def delete_many(self, urls: Iterable[str]) -> int:
        """Delete every URL, logging failures. Returns how many succeeded."""
        deleted = 0
        for url in urls:
            try:
                await self.delete(url)
                deleted += 1
            except Exception as e:
                logger.warning("Error deleting image {}: {}", url, e)
        return deleted


class CloudinaryImageStore(ImageStore):
    def __init__(self, settings: Settings):
        cloudinary.config(
            cloud_name=settings.cloudinary_cloud_name,
            api_key=settings.cloudinary_api_key,
            api_secret=settings.cloudinary_api_secret,
            secure=True,
        )

    async def delete(self, url: str) -> None:
        public_id = public_id_from_url(url)
        if not public_id:
            raise ValueError(f"Not a Cloudinary delivery URL: {url}")
        # the SDK is blocking
        result = await run_in_threadpool(cloudinary.uploader.destroy, public_id)
        if result.get("result") not in ("ok", "not found"):
            raise RuntimeError(f"Cloudinary refused to delete {public_id}: {result}")
        logger.debug("Deleted image {}", public_id)


class NullImageStore(ImageStore):
    """Used when no CDN credentials are configured; only logs."""

    async def delete(self, url: str) -> None:
        logger.debug("Image store disabled, not deleting {}", url)


def create_image_store(settings: Settings) -> ImageStore:
    if settings.cloudinary_enabled:
        return CloudinaryImageStore(settings)
    logger.warning("Cloudinary credentials missing, image deletion is disabled")
    return NullImageStore()
