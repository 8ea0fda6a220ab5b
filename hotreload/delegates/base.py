"""Delegate capabilities and the explicit fallback cascade.

A delegate declares which lookups it serves directly through ``capabilities``
and implements only those methods. ``Cascade`` fills in the rest:

1. module bytes -> module path -> resource stream, read fully
2. resource stream -> resource location, opened
3. resource location -> first of all resource locations
4. all resource locations -> empty list

So a key/value backed delegate declares MODULE_BYTES and RESOURCE_STREAM, and a
URL-addressable delegate only needs ALL_RESOURCE_LOCATIONS.
"""

from __future__ import annotations

import enum
import logging
from typing import BinaryIO
from typing import ClassVar

from ..naming import to_module_path
from ..naming import validate_path
from .locations import open_location

logger = logging.getLogger(__name__)


class Capability(enum.Flag):
    """Lookups a delegate serves directly."""

    NONE = 0
    MODULE_BYTES = enum.auto()
    RESOURCE_LOCATION = enum.auto()
    ALL_RESOURCE_LOCATIONS = enum.auto()
    RESOURCE_STREAM = enum.auto()


_METHODS = {
    Capability.MODULE_BYTES: "resolve_module_bytes",
    Capability.RESOURCE_LOCATION: "resolve_resource_location",
    Capability.ALL_RESOURCE_LOCATIONS: "resolve_all_resource_locations",
    Capability.RESOURCE_STREAM: "resolve_resource_stream",
}


class Delegate:
    """Base class for delegates consulted by an InterceptingResolver.

    Subclasses set ``capabilities`` and define the matching methods:

    - ``resolve_module_bytes(name) -> bytes | None``
    - ``resolve_resource_location(path) -> str | None``
    - ``resolve_all_resource_locations(path) -> list[str]``
    - ``resolve_resource_stream(path) -> BinaryIO | None``

    Methods may raise OSError; chains treat that as "no answer".
    """

    capabilities: ClassVar[Capability] = Capability.NONE

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        for flag, method in _METHODS.items():
            if flag in cls.capabilities and not callable(getattr(cls, method, None)):
                raise TypeError(f"{cls.__name__} declares {flag.name} but does not define {method}()")


class Cascade:
    """Resolver view over one delegate, composing the fallback cascade."""

    def __init__(self, delegate: Delegate):
        self.delegate = delegate
        self.capabilities = delegate.capabilities

    def resolve_module_bytes(self, name: str) -> bytes | None:
        if Capability.MODULE_BYTES in self.capabilities:
            return self.delegate.resolve_module_bytes(name)
        stream = self.resolve_resource_stream(to_module_path(name))
        if stream is None:
            return None
        try:
            with stream:
                return stream.read()
        except OSError as e:
            logger.debug(f"[cascade] reading {name} from {self.delegate!r} failed: {e}")
            return None

    def resolve_resource_location(self, path: str) -> str | None:
        validate_path(path)
        if Capability.RESOURCE_LOCATION in self.capabilities:
            return self.delegate.resolve_resource_location(path)
        locations = self.resolve_all_resource_locations(path)
        return locations[0] if locations else None

    def resolve_all_resource_locations(self, path: str) -> list[str]:
        validate_path(path)
        if Capability.ALL_RESOURCE_LOCATIONS in self.capabilities:
            return list(self.delegate.resolve_all_resource_locations(path) or ())
        return []

    def resolve_resource_stream(self, path: str) -> BinaryIO | None:
        validate_path(path)
        if Capability.RESOURCE_STREAM in self.capabilities:
            return self.delegate.resolve_resource_stream(path)
        location = self.resolve_resource_location(path)
        if location is None:
            return None
        try:
            return open_location(location)
        except OSError as e:
            logger.debug(f"[cascade] opening {location} from {self.delegate!r} failed: {e}")
            return None

    def __repr__(self) -> str:
        return f"Cascade({self.delegate!r})"
