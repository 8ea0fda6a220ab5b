"""Resolver settings: YAML files validated with pydantic.

Settings live under the top-level ``resolver`` key:

    resolver:
      include: "example/.*"
      adopt_parent_sources: false
      delegates:
        - type: directory
          path: ./overrides
        - type: store
          name: hot
        - type: http
          url: https://assets.example.com/app/

Scope priority (most specific wins):
1. local (.hotreload/settings.local.yaml)
2. project (.hotreload/settings.yaml)
3. global (~/.hotreload/settings.yaml)

An explicit file (argument or HOTRELOAD_SETTINGS) replaces the scope lookup.
"""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from typing import Literal

import httpx
import yaml
from pydantic import BaseModel
from pydantic import Field
from pydantic import ValidationError
from pydantic import field_validator
from pydantic import model_validator

from .chain import DelegateChain
from .chain import FaultObserver
from .delegates import Delegate
from .delegates import DirectoryDelegate
from .delegates import HttpDelegate
from .delegates import StoreDelegate
from .exceptions import InvalidArgumentError
from .exceptions import SettingsError
from .filtering import PathFilter
from .intercept import InterceptingResolver
from .intercept import ParentResolver
from .store import BlobStore
from .system import SystemResolver

logger = logging.getLogger(__name__)

SETTINGS_ENV = "HOTRELOAD_SETTINGS"
SETTINGS_KEY = "resolver"


class DelegateConfig(BaseModel):
    """Configuration for a single delegate."""

    type: Literal["store", "directory", "http"] = Field(..., description="Delegate kind")
    name: str | None = Field(None, description="Store name (type: store)")
    path: str | None = Field(None, description="Root directory (type: directory)")
    url: str | None = Field(None, description="Base URL (type: http)")

    @model_validator(mode="after")
    def check_required_field(self) -> DelegateConfig:
        required = {"store": "name", "directory": "path", "http": "url"}[self.type]
        if not getattr(self, required):
            raise ValueError(f"delegate of type '{self.type}' requires '{required}'")
        return self


class ResolverSettings(BaseModel):
    """Complete resolver configuration."""

    include: str = Field(..., description="Regex a namespace path must fully match")
    reserved_prefixes: list[str] | None = Field(
        None, description="Prefixes never intercepted (default: standard library)"
    )
    adopt_parent_sources: bool = Field(
        default=False, description="Define accepted modules here from the parent's sources"
    )
    resource_roots: list[str] | None = Field(
        None, description="Resource directories of the root resolver (default: sys.path)"
    )
    delegates: list[DelegateConfig] = Field(default_factory=list, description="Delegates in priority order")

    @field_validator("include")
    @classmethod
    def check_pattern(cls, value: str) -> str:
        try:
            re.compile(value)
        except re.error as e:
            raise ValueError(f"invalid include pattern {value!r}: {e}") from e
        return value


@dataclass
class SettingsPaths:
    """Standard paths for settings files."""

    global_settings: Path
    project_settings: Path
    local_settings: Path

    @classmethod
    def default(cls) -> SettingsPaths:
        return cls(
            global_settings=Path.home() / ".hotreload" / "settings.yaml",
            project_settings=Path.cwd() / ".hotreload" / "settings.yaml",
            local_settings=Path.cwd() / ".hotreload" / "settings.local.yaml",
        )

    def in_priority_order(self) -> list[Path]:
        """Least specific first, so later files override earlier ones."""
        return [self.global_settings, self.project_settings, self.local_settings]


def _deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dicts, overlay wins."""
    result = base.copy()
    for key, value in overlay.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _read_yaml(path: Path) -> dict[str, Any]:
    with open(path) as f:
        content = yaml.safe_load(f) or {}
    if not isinstance(content, dict):
        raise SettingsError(f"{path}: expected a mapping at top level")
    return content


def parse_settings(data: Mapping[str, Any], source: str = "<settings>") -> ResolverSettings:
    """Validate a settings mapping (with or without the ``resolver`` key).

    Raises:
        SettingsError: The mapping is missing required fields or malformed
    """
    section = data.get(SETTINGS_KEY, data)
    if not section:
        raise SettingsError(f"{source}: no '{SETTINGS_KEY}' settings found")
    try:
        return ResolverSettings.model_validate(section)
    except ValidationError as e:
        raise SettingsError(f"{source}: invalid resolver settings\n{e}") from e


def load_settings(path: Path | None = None, paths: SettingsPaths | None = None) -> ResolverSettings:
    """Load resolver settings.

    Args:
        path: Explicit settings file; falls back to HOTRELOAD_SETTINGS, then
            to the merged scopes
        paths: Scope paths (default: SettingsPaths.default())

    Returns:
        Validated ResolverSettings

    Raises:
        SettingsError: No settings found, or they are invalid
    """
    if path is None and os.environ.get(SETTINGS_ENV):
        path = Path(os.environ[SETTINGS_ENV])

    if path is not None:
        if not path.exists():
            raise SettingsError(f"Settings file not found: {path}")
        try:
            data = _read_yaml(path)
        except yaml.YAMLError as e:
            raise SettingsError(f"{path}: malformed YAML: {e}") from e
        logger.debug(f"[settings] loaded {path}")
        return parse_settings(data, str(path))

    merged: dict[str, Any] = {}
    for scope_path in (paths or SettingsPaths.default()).in_priority_order():
        if not scope_path.exists():
            continue
        try:
            merged = _deep_merge(merged, _read_yaml(scope_path))
            logger.debug(f"[settings] merged {scope_path}")
        except (yaml.YAMLError, SettingsError) as e:
            logger.warning(f"Skipping malformed settings file {scope_path}: {e}")
    return parse_settings(merged, "merged settings")


def create_delegate(
    config: DelegateConfig,
    stores: Mapping[str, BlobStore] | None = None,
    client: httpx.Client | None = None,
) -> Delegate:
    """Build one delegate from its configuration.

    Raises:
        InvalidArgumentError: A store delegate names an unknown store
    """
    if config.type == "store":
        store = (stores or {}).get(config.name)
        if store is None:
            raise InvalidArgumentError(f"Unknown store '{config.name}'")
        return StoreDelegate(store)
    if config.type == "directory":
        return DirectoryDelegate(config.path)
    return HttpDelegate(config.url, client=client)


def create_resolver(
    settings: ResolverSettings,
    parent: ParentResolver | None = None,
    stores: Mapping[str, BlobStore] | None = None,
    client: httpx.Client | None = None,
    on_fault: FaultObserver | None = None,
) -> InterceptingResolver:
    """Create an InterceptingResolver from settings.

    Args:
        settings: Validated settings
        parent: Parent resolver (default: SystemResolver over resource_roots)
        stores: Named blob stores referenced by ``store`` delegates
        client: httpx client shared by ``http`` delegates
        on_fault: Observer for delegate faults

    Returns:
        Configured InterceptingResolver
    """
    if parent is None:
        parent = SystemResolver(settings.resource_roots)
    path_filter = PathFilter(settings.include, settings.reserved_prefixes)
    delegates = [create_delegate(config, stores, client) for config in settings.delegates]
    logger.debug(f"[settings] resolver for {settings.include!r} with {len(delegates)} delegates")
    return InterceptingResolver(
        parent,
        path_filter,
        DelegateChain(delegates, on_fault=on_fault),
        adopt_parent_sources=settings.adopt_parent_sources,
    )
