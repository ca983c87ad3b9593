"""Download a remote image and inline it as a data URL for the vision model."""

import base64
from typing import Optional

import httpx

import askpanel.core.config as config_module
from askpanel.core.errors import RemoteError, ValidationError

FETCH_HEADERS = {
    "User-Agent": "Mozilla/5.0",
    "Accept": "image/*,*/*;q=0.8",
}

_CONTENT_TYPES = {
    "image/jpeg": "image/jpeg",
    "image/png": "image/png",
    "image/webp": "image/webp",
    "image/gif": "image/gif",
}

_EXTENSIONS = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
    ".gif": "image/gif",
}


def sniff_mime_type(content_type: Optional[str], url: Optional[str]) -> str:
    """Pick a MIME type from the content type, then the URL extension, else JPEG."""
    ct = (content_type or "").lower()
    for marker, mime in _CONTENT_TYPES.items():
        if marker in ct:
            return mime

    lower = (url or "").lower()
    for ext, mime in _EXTENSIONS.items():
        if lower.endswith(ext):
            return mime

    return "image/jpeg"


async def fetch_image_as_data_url(
    url: str,
    client: Optional[httpx.AsyncClient] = None,
    max_bytes: Optional[int] = None,
) -> str:
    """
    Fetch an http(s) image and return it as a base64 data URL.

    Raises:
        ValidationError: URL is not http/https.
        RemoteError: fetch failed, response is not an image, or it is too large.
    """
    if not url.lower().startswith(("http://", "https://")):
        raise ValidationError("Only http/https image URLs are supported.")

    if max_bytes is None:
        max_bytes = config_module.settings.image_max_bytes

    owns_client = client is None
    if owns_client:
        client = httpx.AsyncClient(
            timeout=config_module.settings.answer_timeout_seconds,
            follow_redirects=True,
        )

    try:
        response = await client.get(url, headers=FETCH_HEADERS)
    except httpx.HTTPError as e:
        raise RemoteError(f"Failed to fetch image: {e}") from e
    finally:
        if owns_client:
            await client.aclose()

    if response.status_code >= 400:
        raise RemoteError(f"Failed to fetch image ({response.status_code})", response.status_code)

    content_type = response.headers.get("content-type", "")
    if not content_type.lower().startswith("image/"):
        raise RemoteError(f"URL did not return an image. content-type={content_type or 'unknown'}")

    data = response.content
    if len(data) > max_bytes:
        raise RemoteError(f"Image too large (max {max_bytes // (1024 * 1024)}MB).")

    mime = sniff_mime_type(content_type, url)
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{mime};base64,{encoded}"
