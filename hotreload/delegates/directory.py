"""Delegate exposing files under a local directory as file:// locators."""

import logging
from pathlib import Path

from ..exceptions import InvalidArgumentError
from ..naming import validate_path
from .base import Capability
from .base import Delegate
from .locations import path_to_locator

logger = logging.getLogger(__name__)


class DirectoryDelegate(Delegate):
    """URL-addressable delegate over a directory tree.

    Only ``resolve_all_resource_locations`` is implemented; module bytes and
    streams come from opening the returned locator.
    """

    capabilities = Capability.ALL_RESOURCE_LOCATIONS

    def __init__(self, root: str | Path):
        """Initialize with a root directory.

        Args:
            root: Directory holding resources laid out by namespace path.
                A ``file://`` prefix is accepted.
        """
        if not root:
            raise InvalidArgumentError("root must not be empty")
        if isinstance(root, str) and root.startswith("file://"):
            root = root[7:]
        self.root = Path(root).expanduser().resolve()

    def resolve_all_resource_locations(self, path: str) -> list[str]:
        candidate = (self.root / validate_path(path)).resolve()
        if not candidate.is_relative_to(self.root):
            logger.warning(f"[delegate:directory] {path} escapes {self.root}, ignoring")
            return []
        if not candidate.is_file():
            return []
        return [path_to_locator(candidate)]

    def __repr__(self) -> str:
        return f"DirectoryDelegate({self.root})"
