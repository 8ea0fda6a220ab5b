"""Opening resource locators.

Locators are URI strings. ``file://`` locators are read from disk and
``http(s)://`` locators are fetched with httpx. Every failure surfaces as an
``OSError`` (``BackendError`` for transport and scheme problems) so delegate
chains can treat it as "no answer".
"""

import io
import logging
from pathlib import Path
from typing import BinaryIO
from urllib.parse import urlparse
from urllib.request import url2pathname

import httpx

from ..exceptions import BackendError

logger = logging.getLogger(__name__)


def path_to_locator(path: Path) -> str:
    """Return the ``file://`` locator for a filesystem path."""
    return path.resolve().as_uri()


def open_location(locator: str, client: httpx.Client | None = None) -> BinaryIO:
    """Open the content behind ``locator`` as a binary stream.

    Args:
        locator: URI string to open
        client: Optional httpx client for http(s) locators

    Returns:
        Binary file-like object; the caller closes it

    Raises:
        OSError: The content could not be opened (BackendError for
            unsupported schemes and HTTP failures)
    """
    parsed = urlparse(locator)
    if parsed.scheme == "file":
        return Path(url2pathname(parsed.path)).open("rb")
    if parsed.scheme in ("http", "https"):
        return io.BytesIO(_fetch(locator, client))
    raise BackendError(f"Unsupported locator scheme: {locator}")


def _fetch(url: str, client: httpx.Client | None) -> bytes:
    try:
        if client is not None:
            response = client.get(url)
        else:
            with httpx.Client() as owned:
                response = owned.get(url)
        response.raise_for_status()
    except httpx.HTTPError as e:
        logger.debug(f"[locator] fetch failed for {url}: {e}")
        raise BackendError(f"Failed to fetch {url}: {e}") from e
    return response.content
