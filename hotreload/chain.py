"""Priority-ordered delegate chain.

Delegates are consulted in list order; the first one with an answer wins.
``all_resource_locations`` is the exception: it concatenates every delegate's
locations in delegate order.

A delegate that raises OSError is logged and skipped, so a flaky backend
degrades to "nothing new here" instead of failing the lookup. Pass ``on_fault``
to observe these failures.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from collections.abc import Iterable
from typing import Any
from typing import BinaryIO

from .delegates.base import Cascade
from .delegates.base import Delegate
from .exceptions import InvalidArgumentError

logger = logging.getLogger(__name__)

FaultObserver = Callable[[Delegate, str, OSError], None]


class DelegateChain:
    """Immutable ordered sequence of delegates.

    Contract:
    - Inputs: delegates (priority = position), optional fault observer
    - Outputs: first non-None answer, or every location for all_resource_locations
    - Side effects: None beyond the delegates' own
    - Errors: OSError from a delegate is swallowed per delegate
    """

    def __init__(self, delegates: Iterable[Delegate] = (), on_fault: FaultObserver | None = None):
        if delegates is None:
            raise InvalidArgumentError("delegates must not be None")
        self._cascades = tuple(Cascade(delegate) for delegate in delegates)
        self._on_fault = on_fault

    @property
    def delegates(self) -> tuple[Delegate, ...]:
        return tuple(cascade.delegate for cascade in self._cascades)

    def module_bytes(self, name: str) -> bytes | None:
        return self._first("resolve_module_bytes", name)

    def resource_location(self, path: str) -> str | None:
        return self._first("resolve_resource_location", path)

    def resource_stream(self, path: str) -> BinaryIO | None:
        return self._first("resolve_resource_stream", path)

    def all_resource_locations(self, path: str) -> list[str]:
        results: list[str] = []
        for cascade in self._cascades:
            found = self._call(cascade, "resolve_all_resource_locations", path)
            if found:
                results.extend(found)
        return results

    def _first(self, operation: str, key: str) -> Any:
        for cascade in self._cascades:
            found = self._call(cascade, operation, key)
            if found is not None:
                logger.debug(f"[chain] {operation}({key}) answered by {cascade.delegate!r}")
                return found
        return None

    def _call(self, cascade: Cascade, operation: str, key: str) -> Any:
        try:
            return getattr(cascade, operation)(key)
        except OSError as e:
            logger.warning(f"[chain:fault] {cascade.delegate!r} failed {operation}({key}): {e}")
            if self._on_fault is not None:
                self._on_fault(cascade.delegate, operation, e)
            return None

    def __len__(self) -> int:
        return len(self._cascades)

    def __iter__(self):
        return iter(self.delegates)

    def __repr__(self) -> str:
        return f"DelegateChain({list(self.delegates)!r})"
