"""Path filter deciding which namespace paths a resolver may intercept.

A path is intercepted when it does not start with any reserved prefix and
fully matches the inclusion pattern. Reserved prefixes always win, so a broad
pattern such as ``.*`` never reaches into the standard library.

Example:
    path_filter = PathFilter(r"example/.*")
    path_filter.accepts("example/Hello.py")   # True
    path_filter.accepts("json/decoder.py")    # False (reserved)
"""

from __future__ import annotations

import logging
import re
import sys
from collections.abc import Iterable

from .naming import MODULE_SUFFIX
from .naming import validate_path

logger = logging.getLogger(__name__)


def _reserved_prefixes_for(names: Iterable[str]) -> tuple[str, ...]:
    """Build ``name/`` and ``name.py`` prefixes for each top-level name."""
    prefixes: list[str] = []
    for name in sorted(set(names)):
        prefixes.append(f"{name}/")
        prefixes.append(f"{name}{MODULE_SUFFIX}")
    return tuple(prefixes)


DEFAULT_RESERVED_PREFIXES: tuple[str, ...] = _reserved_prefixes_for(
    [*sys.stdlib_module_names, "hotreload"]
)


class PathFilter:
    """Decides whether a namespace path belongs to a resolver's domain.

    Contract:
    - Inputs: include pattern (regex, full match), reserved prefixes
    - Outputs: accept/reject decision per path
    - Side effects: None (pure after initialization)
    - Errors: InvalidArgumentError for an empty path
    """

    def __init__(
        self,
        include: str | re.Pattern[str],
        reserved_prefixes: Iterable[str] | None = None,
    ) -> None:
        """Initialize with an inclusion pattern and reserved prefixes.

        Args:
            include: Regular expression a path must fully match
            reserved_prefixes: Prefixes that are always rejected. Defaults to
                DEFAULT_RESERVED_PREFIXES; pass an empty iterable to disable.
        """
        self.include = include if isinstance(include, re.Pattern) else re.compile(include)
        if reserved_prefixes is None:
            reserved_prefixes = DEFAULT_RESERVED_PREFIXES
        self.reserved_prefixes = tuple(reserved_prefixes)

    def is_reserved(self, path: str) -> bool:
        """Check whether ``path`` falls under a reserved prefix."""
        return path.startswith(self.reserved_prefixes)

    def accepts(self, path: str) -> bool:
        """Check whether ``path`` may be intercepted.

        Args:
            path: Namespace path, for example ``example/Hello.py``

        Returns:
            True if the path is not reserved and matches the inclusion pattern.
        """
        validate_path(path)
        if self.is_reserved(path):
            logger.debug(f"[filter] {path} rejected (reserved prefix)")
            return False
        if self.include.fullmatch(path) is None:
            logger.debug(f"[filter] {path} rejected (no match for {self.include.pattern!r})")
            return False
        return True

    def __repr__(self) -> str:
        return f"PathFilter(include={self.include.pattern!r}, reserved={len(self.reserved_prefixes)})"
