"""Recipe image handling.

Images are validated with a HEAD request and passed through unchanged.
Resizing, thumbnail generation and re-hosting are not done here; the
returned ``thumbnail_url`` is always None for now.
"""
from dataclasses import dataclass
from typing import Optional

from .fetcher import PageFetcher


@dataclass
class StoredImage:
    image_url: str
    thumbnail_url: Optional[str] = None


async def download_image(
    fetcher: PageFetcher,
    image_url: str,
    skip_thumbnail: bool = False,
) -> Optional[StoredImage]:
    if not image_url or not image_url.startswith(("http://", "https://")):
        return None
    if not await fetcher.head_image(image_url):
        return None
    return StoredImage(image_url=image_url)
