"""Turning module source bytes into module objects.

Materialized modules are standalone: they are not registered in
``sys.modules``, so a child resolver can define its own version of a name that
is already importable elsewhere in the process.

When the defining authority can resolve modules (it has ``resolve_module``),
every import statement executed by the module goes through that authority.
Sibling modules served by the same delegates therefore see each other, and
anything the authority does not intercept still comes from its parent.
"""

from __future__ import annotations

import builtins
import importlib.machinery
import importlib.util
import logging
import threading
import types
import weakref
from collections.abc import Callable
from collections.abc import Sequence
from typing import Any
from typing import Protocol

from .exceptions import MaterializationError
from .exceptions import ModuleNotResolvedError
from .naming import to_module_path

logger = logging.getLogger(__name__)

ORIGIN_PREFIX = "hotreload:"


class ResolverImport:
    """``__import__`` replacement that resolves names through a resolver.

    Follows the builtin contract: ``import a.b`` returns ``a`` with ``b``
    bound on it, ``from a import b`` returns ``a`` with submodule ``b`` bound
    if it is not already an attribute. Packages the resolver cannot supply
    become empty namespace modules, one per name for the lifetime of this
    importer.
    """

    def __init__(self, resolve: Callable[[str], types.ModuleType]):
        self._resolve = resolve
        self._namespaces: dict[str, types.ModuleType] = {}

    def __call__(
        self,
        name: str,
        globals: dict[str, Any] | None = None,
        locals: dict[str, Any] | None = None,
        fromlist: Sequence[str] | None = (),
        level: int = 0,
    ) -> types.ModuleType:
        if level:
            package = (globals or {}).get("__package__")
            name = importlib.util.resolve_name("." * level + name, package)
        if fromlist:
            return self._import_from(name, fromlist)
        return self._import_top(name)

    def _import_from(self, name: str, fromlist: Sequence[str]) -> types.ModuleType:
        names = [item for item in fromlist if item != "*"]
        try:
            module = self._resolve(name)
        except ModuleNotResolvedError:
            module = self._namespace(name)
            # Keep the miss unless the names are submodules, as in ``from pkg import mod``.
            if not any([self._bind_submodule(module, item) for item in names]):
                raise
            return module
        for item in names:
            if not hasattr(module, item):
                self._bind_submodule(module, item)
        return module

    def _import_top(self, name: str) -> types.ModuleType:
        module = self._resolve(name)
        parts = name.split(".")
        for depth in range(len(parts) - 1, 0, -1):
            prefix = ".".join(parts[:depth])
            try:
                parent = self._resolve(prefix)
            except ModuleNotResolvedError:
                parent = self._namespace(prefix)
            if getattr(parent, parts[depth], None) is not module:
                setattr(parent, parts[depth], module)
            module = parent
        return module

    def _bind_submodule(self, parent: types.ModuleType, item: str) -> bool:
        try:
            child = self._resolve(f"{parent.__name__}.{item}")
        except ModuleNotResolvedError:
            return False
        setattr(parent, item, child)
        return True

    def _namespace(self, name: str) -> types.ModuleType:
        namespace = self._namespaces.get(name)
        if namespace is None:
            namespace = types.ModuleType(name)
            namespace.__path__ = []
            self._namespaces[name] = namespace
        return namespace


class Materializer(Protocol):
    """Protocol for the bytes -> module primitive."""

    def materialize(self, name: str, source: bytes, authority: Any) -> types.ModuleType:
        """Define module ``name`` from ``source`` on behalf of ``authority``.

        Raises:
            MaterializationError: Invalid source, or ``name`` already defined
                for ``authority``
        """
        ...


class SourceMaterializer:
    """Compiles Python source and executes it into a fresh module.

    Defined names are tracked per authority. Defining the same name twice for
    one authority is refused; different authorities may define the same name.
    """

    def __init__(self) -> None:
        self._defined: weakref.WeakKeyDictionary[Any, set[str]] = weakref.WeakKeyDictionary()
        self._lock = threading.Lock()

    def is_defined(self, name: str, authority: Any) -> bool:
        with self._lock:
            return name in self._defined.get(authority, ())

    def materialize(self, name: str, source: bytes, authority: Any) -> types.ModuleType:
        origin = ORIGIN_PREFIX + to_module_path(name)
        with self._lock:
            defined = self._defined.setdefault(authority, set())
            if name in defined:
                raise MaterializationError(name, "already defined by this resolver")
            # Reserved before execution, released again if execution fails.
            defined.add(name)

        try:
            module = self._execute(name, source, origin, authority)
        except MaterializationError:
            with self._lock:
                defined.discard(name)
            raise

        logger.debug(f"[materialize] defined {name} ({len(source)} bytes) for {authority!r}")
        return module

    def _execute(self, name: str, source: bytes, origin: str, authority: Any) -> types.ModuleType:
        try:
            code = compile(source, origin, "exec", dont_inherit=True)
        except (SyntaxError, ValueError) as e:
            raise MaterializationError(name, f"invalid source: {e}") from e

        module = types.ModuleType(name)
        module.__file__ = origin
        module.__spec__ = importlib.machinery.ModuleSpec(name, loader=None, origin=origin)
        module.__resolver__ = authority
        if "." in name:
            module.__package__ = name.rpartition(".")[0]
        resolve = getattr(authority, "resolve_module", None)
        if callable(resolve):
            module.__builtins__ = {**builtins.__dict__, "__import__": ResolverImport(resolve)}

        try:
            exec(code, module.__dict__)
        except Exception as e:
            raise MaterializationError(name, f"module body raised {type(e).__name__}: {e}") from e
        return module
