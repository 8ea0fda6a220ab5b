"""Shared fixtures for hotreload tests."""

import io
import types

import pytest

from hotreload.exceptions import ModuleNotResolvedError

HELLO_SOURCE = b'def main():\n    return "Hello, world!"\n'


class StubParent:
    """Dict-backed parent resolver that counts module lookups."""

    def __init__(self, modules=None, locations=None, contents=None):
        self.modules = dict(modules or {})
        self.locations = {path: list(found) for path, found in (locations or {}).items()}
        self.contents = dict(contents or {})
        self.module_calls: list[str] = []

    def resolve_module(self, name):
        self.module_calls.append(name)
        if name not in self.modules:
            raise ModuleNotResolvedError(name, "not in stub parent")
        return self.modules[name]

    def resolve_resource_location(self, path):
        found = self.locations.get(path)
        return found[0] if found else None

    def resolve_all_resource_locations(self, path):
        return list(self.locations.get(path, ()))

    def resolve_resource_stream(self, path):
        data = self.contents.get(path)
        return io.BytesIO(data) if data is not None else None


@pytest.fixture
def hello_source():
    """Module source whose main() returns the greeting."""
    return HELLO_SOURCE


@pytest.fixture
def stub_parent():
    """Empty stub parent; tests populate it as needed."""
    return StubParent()


@pytest.fixture
def parent_module():
    """A module object that only the parent knows about."""
    module = types.ModuleType("example.Parent")
    module.ORIGIN = "parent"
    return module
