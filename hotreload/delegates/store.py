"""Delegate backed by a namespaced blob store."""

import io
from typing import BinaryIO

from ..exceptions import InvalidArgumentError
from ..naming import to_module_path
from ..naming import validate_path
from ..store import BlobStore
from .base import Capability
from .base import Delegate


class StoreDelegate(Delegate):
    """Serves module bytes and resource streams straight from a BlobStore.

    Locations are not exposed: a stored blob has no address of its own, so
    ``resolve_resource_location`` falls through the cascade to None.
    """

    capabilities = Capability.MODULE_BYTES | Capability.RESOURCE_STREAM

    def __init__(self, store: BlobStore):
        if store is None:
            raise InvalidArgumentError("store must not be None")
        self.store = store

    def resolve_module_bytes(self, name: str) -> bytes | None:
        return self.store.get(to_module_path(name))

    def resolve_resource_stream(self, path: str) -> BinaryIO | None:
        contents = self.store.get(validate_path(path))
        if contents is None:
            return None
        return io.BytesIO(contents)

    def __repr__(self) -> str:
        return f"StoreDelegate({self.store.namespace})"
