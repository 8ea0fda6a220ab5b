"""Non-intercepting root resolver backed by the regular import system."""

from __future__ import annotations

import importlib
import logging
import sys
import types
from collections.abc import Sequence
from pathlib import Path
from typing import BinaryIO

from .delegates.locations import path_to_locator
from .exceptions import ModuleNotResolvedError
from .naming import validate_name
from .naming import validate_path

logger = logging.getLogger(__name__)


class SystemResolver:
    """Root of a resolver hierarchy.

    Modules come from ``importlib.import_module``. Resources are files found
    under ``resource_roots``, which default to the directory entries of
    ``sys.path`` at lookup time.
    """

    def __init__(self, resource_roots: Sequence[str | Path] | None = None):
        self._resource_roots = None if resource_roots is None else [Path(root) for root in resource_roots]

    @property
    def resource_roots(self) -> list[Path]:
        if self._resource_roots is not None:
            return list(self._resource_roots)
        return [Path(entry or ".") for entry in sys.path if Path(entry or ".").is_dir()]

    def resolve_module(self, name: str) -> types.ModuleType:
        """Import ``name`` through the regular import system.

        Raises:
            ModuleNotResolvedError: The module is not importable
        """
        validate_name(name)
        try:
            return importlib.import_module(name)
        except ModuleNotFoundError as e:
            # A missing dependency of an existing module is not a miss for ``name``.
            if e.name and name != e.name and not name.startswith(e.name + "."):
                raise
            raise ModuleNotResolvedError(name, str(e)) from e

    def resolve_resource_location(self, path: str) -> str | None:
        locations = self.resolve_all_resource_locations(path)
        return locations[0] if locations else None

    def resolve_all_resource_locations(self, path: str) -> list[str]:
        return [path_to_locator(candidate) for candidate in self._candidates(path)]

    def resolve_resource_stream(self, path: str) -> BinaryIO | None:
        for candidate in self._candidates(path):
            try:
                return candidate.open("rb")
            except OSError as e:
                logger.debug(f"[system] cannot open {candidate}: {e}")
        return None

    def _candidates(self, path: str) -> list[Path]:
        """Existing files for ``path``, one per root that contains it."""
        validate_path(path)
        found = []
        for root in self.resource_roots:
            root = root.resolve()
            candidate = (root / path).resolve()
            if not candidate.is_relative_to(root):
                logger.debug(f"[system] {path} escapes {root}, ignoring")
                continue
            if candidate.is_file():
                found.append(candidate)
        return found

    def __repr__(self) -> str:
        return "SystemResolver()"
