"""Hot-reload resolution: child-first module and resource lookup.

An InterceptingResolver consults a priority-ordered chain of delegates before
falling back to its parent, for every path its PathFilter accepts.
"""

from .chain import DelegateChain
from .delegates import Capability
from .delegates import Delegate
from .delegates import DirectoryDelegate
from .delegates import HttpDelegate
from .delegates import StaticDelegate
from .delegates import StoreDelegate
from .exceptions import BackendError
from .exceptions import HotReloadError
from .exceptions import InvalidArgumentError
from .exceptions import MaterializationError
from .exceptions import ModuleNotResolvedError
from .exceptions import SettingsError
from .filtering import DEFAULT_RESERVED_PREFIXES
from .filtering import PathFilter
from .intercept import InterceptingResolver
from .materialize import SourceMaterializer
from .naming import MODULE_SUFFIX
from .naming import to_module_path
from .settings import ResolverSettings
from .settings import create_resolver
from .settings import load_settings
from .store import BlobStore
from .store import InMemoryBlobStore
from .system import SystemResolver

__all__ = [
    "BackendError",
    "BlobStore",
    "Capability",
    "DEFAULT_RESERVED_PREFIXES",
    "Delegate",
    "DelegateChain",
    "DirectoryDelegate",
    "HotReloadError",
    "HttpDelegate",
    "InMemoryBlobStore",
    "InterceptingResolver",
    "InvalidArgumentError",
    "MODULE_SUFFIX",
    "MaterializationError",
    "ModuleNotResolvedError",
    "PathFilter",
    "ResolverSettings",
    "SettingsError",
    "SourceMaterializer",
    "StaticDelegate",
    "StoreDelegate",
    "SystemResolver",
    "create_resolver",
    "load_settings",
    "to_module_path",
]
