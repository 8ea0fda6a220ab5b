"""Delegates supplying module bytes and resources to an InterceptingResolver."""

from .base import Capability
from .base import Cascade
from .base import Delegate
from .directory import DirectoryDelegate
from .http import HttpDelegate
from .locations import open_location
from .locations import path_to_locator
from .static import StaticDelegate
from .store import StoreDelegate

__all__ = [
    "Capability",
    "Cascade",
    "Delegate",
    "DirectoryDelegate",
    "HttpDelegate",
    "StaticDelegate",
    "StoreDelegate",
    "open_location",
    "path_to_locator",
]
