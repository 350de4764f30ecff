"""
Image fetching for icons and screenshots.

Each image is fetched on its own; a failure only affects that image.
"""

from __future__ import annotations

import logging
from typing import Optional

import requests

from common.decorators import handle_errors
from common.exceptions import ImageLoadError

logger = logging.getLogger(__name__)

MAX_IMAGE_BYTES = 8 * 1024 * 1024


def fetch_image(url: str, timeout: float = 10.0, session: Optional[requests.Session] = None) -> bytes:
    """
    Download raw image bytes.

    Raises:
        ImageLoadError: on a missing URL, HTTP error, non-image response
            or oversized body.
    """
    if not url:
        raise ImageLoadError(url or "", "no URL")

    http = session or requests
    try:
        response = http.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        raise ImageLoadError(url, str(e))

    content_type = response.headers.get("Content-Type", "")
    if content_type and not content_type.startswith("image/"):
        raise ImageLoadError(url, f"unexpected content type {content_type}")

    data = response.content
    if not data:
        raise ImageLoadError(url, "empty response")
    if len(data) > MAX_IMAGE_BYTES:
        raise ImageLoadError(url, f"image larger than {MAX_IMAGE_BYTES} bytes")
    return data


@handle_errors(ImageLoadError, default=None, log_level=logging.DEBUG)
def try_fetch_image(url: str, timeout: float = 10.0, session: Optional[requests.Session] = None) -> Optional[bytes]:
    """Like ``fetch_image`` but returns None instead of raising."""
    return fetch_image(url, timeout=timeout, session=session)
