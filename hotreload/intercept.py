"""Intercepting resolver: child-first module and resource resolution.

An InterceptingResolver sits in front of a parent resolver. For every lookup
whose namespace path passes its PathFilter it first asks its own delegate
chain, and only falls back to the parent when no delegate has an answer.
Stacking resolvers builds a hierarchy in which children always get first
refusal.

Module lookups are cached in two places:

- defined modules: materialized by this resolver, pinned here for good
- parent modules: obtained from the parent, remembered so the parent is
  asked only once, never treated as defined here

Neither cache evicts. Resource lookups are not cached.
"""

from __future__ import annotations

import logging
import threading
import types
from collections.abc import Iterable
from typing import BinaryIO
from typing import Protocol

from .chain import DelegateChain
from .delegates.base import Delegate
from .exceptions import InvalidArgumentError
from .exceptions import ModuleNotResolvedError
from .filtering import PathFilter
from .materialize import Materializer
from .materialize import SourceMaterializer
from .naming import to_module_path
from .naming import validate_name
from .naming import validate_path

logger = logging.getLogger(__name__)


class ParentResolver(Protocol):
    """What an InterceptingResolver needs from its parent.

    Both InterceptingResolver and SystemResolver satisfy this protocol.
    """

    def resolve_module(self, name: str) -> types.ModuleType: ...

    def resolve_resource_location(self, path: str) -> str | None: ...

    def resolve_all_resource_locations(self, path: str) -> list[str]: ...

    def resolve_resource_stream(self, path: str) -> BinaryIO | None: ...


class InterceptingResolver:
    """Resolver that lets its delegates shadow the parent.

    Contract:
    - Inputs: dotted module names, namespace paths
    - Outputs: module objects (same object for repeated lookups), locators,
      binary streams
    - Side effects: grows the two module caches; materializes modules
    - Errors: InvalidArgumentError for empty input, ModuleNotResolvedError
      when neither side has a module, MaterializationError when the source is
      rejected. Resource misses return None or [].

    Example:
        store = InMemoryBlobStore()
        store.put("example/Hello.py", b"def main():\\n    return 'Hello, world!'\\n")
        resolver = InterceptingResolver(
            SystemResolver(), PathFilter(r"example/.*"), [StoreDelegate(store)]
        )
        resolver.resolve_module("example.Hello").main()  # 'Hello, world!'
    """

    def __init__(
        self,
        parent: ParentResolver,
        path_filter: PathFilter,
        delegates: DelegateChain | Iterable[Delegate],
        materializer: Materializer | None = None,
        adopt_parent_sources: bool = False,
    ):
        """Initialize the resolver.

        Args:
            parent: Resolver consulted when this one has no answer
            path_filter: Decides which paths this resolver may intercept
            delegates: Delegate chain, or delegates in priority order
            materializer: Bytes -> module primitive (default: SourceMaterializer)
            adopt_parent_sources: When no delegate supplies an accepted module,
                read its source from the parent's resources and define it here
                instead of borrowing the parent's module
        """
        if parent is None:
            raise InvalidArgumentError("parent must not be None")
        if path_filter is None:
            raise InvalidArgumentError("path_filter must not be None")
        if delegates is None:
            raise InvalidArgumentError("delegates must not be None")
        self._parent = parent
        self._path_filter = path_filter
        self._delegates = delegates if isinstance(delegates, DelegateChain) else DelegateChain(delegates)
        self._materializer = materializer or SourceMaterializer()
        self._adopt_parent_sources = adopt_parent_sources

        self._defined: dict[str, types.ModuleType] = {}
        self._from_parent: dict[str, types.ModuleType] = {}
        self._lock = threading.RLock()

    @property
    def parent(self) -> ParentResolver:
        return self._parent

    @property
    def path_filter(self) -> PathFilter:
        return self._path_filter

    @property
    def delegates(self) -> DelegateChain:
        return self._delegates

    # ----- Modules -----

    def resolve_module(self, name: str) -> types.ModuleType:
        """Return the module for ``name``, defining it here if a delegate has it.

        Args:
            name: Dotted module name

        Returns:
            The module; repeated calls return the identical object

        Raises:
            ModuleNotResolvedError: Neither the delegates nor the parent have it
            MaterializationError: The supplied source was rejected
        """
        validate_name(name)
        with self._lock:
            module = self._defined.get(name)
            if module is not None:
                return module
            module = self._from_parent.get(name)
            if module is not None:
                return module

            module = self._define_locally(name)
            if module is not None:
                return module

            module = self._resolve_from_parent(name)
            self._from_parent[name] = module
            return module

    def _define_locally(self, name: str) -> types.ModuleType | None:
        path = to_module_path(name)
        if not self._path_filter.accepts(path):
            return None

        source = self._delegates.module_bytes(name)
        layer = "delegate"
        if source is None and self._adopt_parent_sources:
            source = self._read_parent_source(path)
            layer = "parent source"
        if source is None:
            return None

        module = self._materializer.materialize(name, source, self)
        self._defined[name] = module
        logger.info(f"[resolve:module] {name} defined from {layer}")
        return module

    def _read_parent_source(self, path: str) -> bytes | None:
        stream = self._parent.resolve_resource_stream(path)
        if stream is None:
            return None
        try:
            with stream:
                return stream.read()
        except OSError as e:
            logger.warning(f"[resolve:module] reading {path} from parent failed: {e}")
            return None

    def _resolve_from_parent(self, name: str) -> types.ModuleType:
        try:
            module = self._parent.resolve_module(name)
        except ModuleNotResolvedError:
            logger.debug(f"[resolve:module] {name} not found")
            raise
        except ModuleNotFoundError as e:
            # A missing dependency of an existing module is not a miss for ``name``.
            if e.name and name != e.name and not name.startswith(e.name + "."):
                raise
            logger.debug(f"[resolve:module] {name} not found")
            raise ModuleNotResolvedError(name, str(e)) from e
        logger.debug(f"[resolve:module] {name} -> parent")
        return module

    def is_defined_here(self, name: str) -> bool:
        """Check whether ``name`` was materialized by this resolver."""
        with self._lock:
            return name in self._defined

    def defined_names(self) -> list[str]:
        with self._lock:
            return sorted(self._defined)

    def parent_resolved_names(self) -> list[str]:
        with self._lock:
            return sorted(self._from_parent)

    # ----- Resources -----

    def resolve_resource_location(self, path: str) -> str | None:
        """Return the first locator for ``path``, preferring local delegates."""
        validate_path(path)
        if self._path_filter.accepts(path):
            location = self._delegates.resource_location(path)
            if location is not None:
                return location
        return self._parent.resolve_resource_location(path)

    def resolve_all_resource_locations(self, path: str) -> list[str]:
        """Return every locator for ``path``: local ones first, then the parent's.

        Local locators keep delegate priority order; the parent's list follows
        unchanged.
        """
        validate_path(path)
        parent_locations = self._parent.resolve_all_resource_locations(path)
        if not self._path_filter.accepts(path):
            return parent_locations
        local_locations = self._delegates.all_resource_locations(path)
        if not local_locations:
            return parent_locations
        return [*local_locations, *parent_locations]

    def resolve_resource_stream(self, path: str) -> BinaryIO | None:
        """Open the content for ``path``, preferring local delegates."""
        validate_path(path)
        if self._path_filter.accepts(path):
            stream = self._delegates.resource_stream(path)
            if stream is not None:
                return stream
        return self._parent.resolve_resource_stream(path)

    def __repr__(self) -> str:
        return (
            f"InterceptingResolver(filter={self._path_filter!r}, "
            f"delegates={len(self._delegates)}, defined={len(self._defined)})"
        )
