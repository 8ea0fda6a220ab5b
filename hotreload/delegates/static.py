"""Delegate over an in-memory mapping, for embedding and tests."""

import io
from collections.abc import Mapping
from collections.abc import Sequence
from typing import BinaryIO

from ..naming import validate_path
from .base import Capability
from .base import Delegate


class StaticDelegate(Delegate):
    """Serves fixed contents and locators.

    Args:
        contents: path -> bytes, served as resource streams (and, through the
            cascade, as module bytes)
        locations: path -> locators, served as resource locations
    """

    capabilities = Capability.ALL_RESOURCE_LOCATIONS | Capability.RESOURCE_STREAM

    def __init__(
        self,
        contents: Mapping[str, bytes] | None = None,
        locations: Mapping[str, Sequence[str]] | None = None,
    ):
        self.contents = dict(contents or {})
        self.locations = {path: list(found) for path, found in (locations or {}).items()}

    def add(self, path: str, data: bytes | str) -> None:
        self.contents[path] = data.encode() if isinstance(data, str) else data

    def add_location(self, path: str, locator: str) -> None:
        self.locations.setdefault(path, []).append(locator)

    def resolve_all_resource_locations(self, path: str) -> list[str]:
        return list(self.locations.get(validate_path(path), ()))

    def resolve_resource_stream(self, path: str) -> BinaryIO | None:
        data = self.contents.get(validate_path(path))
        return io.BytesIO(data) if data is not None else None

    def __repr__(self) -> str:
        return f"StaticDelegate(contents={len(self.contents)}, locations={len(self.locations)})"
