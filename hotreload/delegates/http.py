"""Delegate over a remote HTTP(S) tree, fetched with httpx."""

import io
import logging
from typing import BinaryIO

import httpx

from ..exceptions import BackendError
from ..exceptions import InvalidArgumentError
from ..naming import validate_path
from .base import Capability
from .base import Delegate

logger = logging.getLogger(__name__)


class HttpDelegate(Delegate):
    """URL-addressable delegate rooted at ``base_url``.

    A resource exists when a HEAD request for ``base_url + path`` succeeds.
    Streams are fetched with GET; a 404 is "no answer", any other failure is a
    BackendError.
    """

    capabilities = Capability.ALL_RESOURCE_LOCATIONS | Capability.RESOURCE_STREAM

    def __init__(self, base_url: str, client: httpx.Client | None = None):
        """Initialize with a base URL.

        Args:
            base_url: Root URL; a trailing slash is added when missing
            client: Optional httpx client (default: a private client)
        """
        if not base_url:
            raise InvalidArgumentError("base_url must not be empty")
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self.client = client or httpx.Client()

    def url_for(self, path: str) -> str:
        return self.base_url + validate_path(path).lstrip("/")

    def resolve_all_resource_locations(self, path: str) -> list[str]:
        url = self.url_for(path)
        response = self._request("HEAD", url)
        if response.status_code == httpx.codes.NOT_FOUND:
            return []
        return [url]

    def resolve_resource_stream(self, path: str) -> BinaryIO | None:
        url = self.url_for(path)
        response = self._request("GET", url)
        if response.status_code == httpx.codes.NOT_FOUND:
            return None
        return io.BytesIO(response.content)

    def _request(self, method: str, url: str) -> httpx.Response:
        try:
            response = self.client.request(method, url)
            if response.status_code != httpx.codes.NOT_FOUND:
                response.raise_for_status()
        except httpx.HTTPError as e:
            raise BackendError(f"{method} {url} failed: {e}") from e
        logger.debug(f"[delegate:http] {method} {url} -> {response.status_code}")
        return response

    def close(self) -> None:
        self.client.close()

    def __repr__(self) -> str:
        return f"HttpDelegate({self.base_url})"
