"""Tests for InterceptingResolver - child-first resolution and the module caches."""

import threading
import time
import types
from concurrent.futures import ThreadPoolExecutor

import pytest

from hotreload.chain import DelegateChain
from hotreload.delegates import Capability
from hotreload.delegates import Delegate
from hotreload.delegates import StaticDelegate
from hotreload.delegates import StoreDelegate
from hotreload.exceptions import BackendError
from hotreload.exceptions import InvalidArgumentError
from hotreload.exceptions import MaterializationError
from hotreload.exceptions import ModuleNotResolvedError
from hotreload.filtering import PathFilter
from hotreload.intercept import InterceptingResolver
from hotreload.materialize import SourceMaterializer
from hotreload.store import InMemoryBlobStore
from hotreload.system import SystemResolver


class RecordingDelegate(StaticDelegate):
    """StaticDelegate that records every path it is asked about."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.calls: list[str] = []

    def resolve_all_resource_locations(self, path):
        self.calls.append(path)
        return super().resolve_all_resource_locations(path)

    def resolve_resource_stream(self, path):
        self.calls.append(path)
        return super().resolve_resource_stream(path)


class CountingMaterializer(SourceMaterializer):
    def __init__(self):
        super().__init__()
        self.count = 0

    def materialize(self, name, source, authority):
        self.count += 1
        return super().materialize(name, source, authority)


@pytest.fixture
def store(hello_source):
    store = InMemoryBlobStore()
    store.put("example/Hello.py", hello_source)
    return store


@pytest.fixture
def resolver(store):
    return InterceptingResolver(
        SystemResolver(resource_roots=[]), PathFilter(r"example/.*"), [StoreDelegate(store)]
    )


class TestConstruction:
    def test_parent_is_required(self):
        with pytest.raises(InvalidArgumentError):
            InterceptingResolver(None, PathFilter(r".*"), [])

    def test_filter_is_required(self, stub_parent):
        with pytest.raises(InvalidArgumentError):
            InterceptingResolver(stub_parent, None, [])

    def test_delegates_are_required(self, stub_parent):
        with pytest.raises(InvalidArgumentError):
            InterceptingResolver(stub_parent, PathFilter(r".*"), None)

    def test_accepts_prebuilt_chain(self, stub_parent):
        chain = DelegateChain([StaticDelegate()])
        assert InterceptingResolver(stub_parent, PathFilter(r".*"), chain).delegates is chain


class TestHelloWorld:
    def test_module_from_store_runs(self, resolver):
        module = resolver.resolve_module("example.Hello")
        assert module.main() == "Hello, world!"
        assert resolver.is_defined_here("example.Hello") is True

    def test_missing_module_is_not_found(self, resolver):
        with pytest.raises(ModuleNotResolvedError):
            resolver.resolve_module("example.Missing")

    def test_empty_name_is_a_validation_error(self, resolver):
        with pytest.raises(InvalidArgumentError):
            resolver.resolve_module("")

    def test_defining_resolver_is_recorded(self, resolver):
        assert resolver.resolve_module("example.Hello").__resolver__ is resolver


class TestModuleCaching:
    def test_repeated_resolution_returns_same_object(self, resolver):
        first = resolver.resolve_module("example.Hello")
        assert resolver.resolve_module("example.Hello") is first

    def test_defined_module_is_pinned_after_store_changes(self, resolver, store):
        first = resolver.resolve_module("example.Hello")
        store.put("example/Hello.py", b'def main():\n    return "changed"\n')
        assert resolver.resolve_module("example.Hello") is first
        assert first.main() == "Hello, world!"

    def test_parent_is_asked_once(self, stub_parent, parent_module):
        stub_parent.modules["example.Parent"] = parent_module
        resolver = InterceptingResolver(stub_parent, PathFilter(r"example/.*"), [StaticDelegate()])

        assert resolver.resolve_module("example.Parent") is parent_module
        assert resolver.resolve_module("example.Parent") is parent_module
        assert stub_parent.module_calls == ["example.Parent"]

    def test_parent_modules_are_not_defined_here(self, stub_parent, parent_module):
        stub_parent.modules["example.Parent"] = parent_module
        resolver = InterceptingResolver(stub_parent, PathFilter(r"example/.*"), [StaticDelegate()])

        resolver.resolve_module("example.Parent")

        assert resolver.is_defined_here("example.Parent") is False
        assert resolver.parent_resolved_names() == ["example.Parent"]
        assert resolver.defined_names() == []

    def test_parent_cached_name_is_not_overridden_later(self, stub_parent, parent_module):
        stub_parent.modules["example.Parent"] = parent_module
        delegate = StaticDelegate()
        resolver = InterceptingResolver(stub_parent, PathFilter(r"example/.*"), [delegate])

        resolver.resolve_module("example.Parent")
        delegate.add("example/Parent.py", "ORIGIN = 'child'\n")

        assert resolver.resolve_module("example.Parent") is parent_module

    def test_misses_are_not_cached(self, resolver, store):
        with pytest.raises(ModuleNotResolvedError):
            resolver.resolve_module("example.Later")
        store.put("example/Later.py", b"VALUE = 42\n")
        assert resolver.resolve_module("example.Later").VALUE == 42

    def test_materialization_error_propagates_and_is_not_cached(self, store):
        materializer = CountingMaterializer()
        resolver = InterceptingResolver(
            SystemResolver(resource_roots=[]),
            PathFilter(r"example/.*"),
            [StoreDelegate(store)],
            materializer=materializer,
        )
        store.put("example/Broken.py", b"def (:\n")

        with pytest.raises(MaterializationError):
            resolver.resolve_module("example.Broken")
        store.put("example/Broken.py", b"FIXED = True\n")

        assert resolver.resolve_module("example.Broken").FIXED is True
        assert materializer.count == 2


class TestFilterGating:
    def test_rejected_module_goes_straight_to_parent(self, stub_parent, parent_module):
        stub_parent.modules["other.Parent"] = parent_module
        delegate = RecordingDelegate({"other/Parent.py": b"ORIGIN = 'child'\n"})
        resolver = InterceptingResolver(stub_parent, PathFilter(r"example/.*"), [delegate])

        assert resolver.resolve_module("other.Parent") is parent_module
        assert delegate.calls == []

    def test_reserved_prefix_is_never_intercepted(self):
        delegate = RecordingDelegate({"json.py": b"HIJACKED = True\n"})
        resolver = InterceptingResolver(SystemResolver(resource_roots=[]), PathFilter(r".*"), [delegate])

        module = resolver.resolve_module("json")

        assert not hasattr(module, "HIJACKED")
        assert delegate.calls == []

    def test_rejected_resources_skip_delegates(self, stub_parent):
        stub_parent.locations["other/a.txt"] = ["http://parent/a"]
        stub_parent.contents["other/a.txt"] = b"parent"
        delegate = RecordingDelegate({"other/a.txt": b"child"}, {"other/a.txt": ["http://child/a"]})
        resolver = InterceptingResolver(stub_parent, PathFilter(r"example/.*"), [delegate])

        assert resolver.resolve_resource_location("other/a.txt") == "http://parent/a"
        assert resolver.resolve_all_resource_locations("other/a.txt") == ["http://parent/a"]
        assert resolver.resolve_resource_stream("other/a.txt").read() == b"parent"
        assert delegate.calls == []

    def test_rejected_all_locations_returns_parent_list(self, stub_parent):
        stub_parent.locations["other/a.txt"] = ["http://parent/a"]
        resolver = InterceptingResolver(stub_parent, PathFilter(r"example/.*"), [StaticDelegate()])
        assert resolver.resolve_all_resource_locations("other/a.txt") == ["http://parent/a"]


class TestChainPriority:
    @pytest.fixture
    def resolver(self, stub_parent):
        delegate1 = StaticDelegate({"example/a.txt": b"1", "example/A.py": b"VALUE = '1'\n"})
        delegate2 = StaticDelegate(
            {
                "example/a.txt": b"2",
                "example/b.txt": b"2",
                "example/A.py": b"VALUE = '2'\n",
                "example/B.py": b"VALUE = '2'\n",
            }
        )
        return InterceptingResolver(stub_parent, PathFilter(r"example/.*"), [delegate1, delegate2])

    def test_streams_follow_priority(self, resolver):
        assert resolver.resolve_resource_stream("example/a.txt").read() == b"1"
        assert resolver.resolve_resource_stream("example/b.txt").read() == b"2"

    def test_modules_follow_priority(self, resolver):
        assert resolver.resolve_module("example.A").VALUE == "1"
        assert resolver.resolve_module("example.B").VALUE == "2"

    def test_unresolved_resource_is_none(self, resolver):
        assert resolver.resolve_resource_stream("example/c.txt") is None
        assert resolver.resolve_resource_location("example/c.txt") is None
        assert resolver.resolve_all_resource_locations("example/c.txt") == []


class TestModuleImports:
    """Modules defined here import through the resolver that defined them."""

    GREETER = b'def greet(who):\n    return f"Hello, {who}!"\n'
    HELLO = b'from example.Greeter import greet\n\ndef main():\n    return greet("world")\n'

    @pytest.fixture
    def store(self):
        store = InMemoryBlobStore()
        store.put("example/Greeter.py", self.GREETER)
        store.put("example/Hello.py", self.HELLO)
        return store

    def test_module_imports_sibling_from_store(self, resolver):
        greeter = resolver.resolve_module("example.Greeter")
        hello = resolver.resolve_module("example.Hello")
        assert hello.main() == "Hello, world!"
        assert hello.greet is greeter.greet

    def test_imported_sibling_is_defined_on_demand(self, resolver):
        assert resolver.resolve_module("example.Hello").main() == "Hello, world!"
        assert resolver.defined_names() == ["example.Greeter", "example.Hello"]

    def test_standard_library_import_comes_from_parent(self, resolver, store):
        store.put("example/Encoded.py", b"import json\nVALUE = json.dumps({'a': 1})\n")
        assert resolver.resolve_module("example.Encoded").VALUE == '{"a": 1}'
        assert "json" in resolver.parent_resolved_names()

    def test_child_module_imports_parent_resolver_module(self, store):
        parent = InterceptingResolver(
            SystemResolver(resource_roots=[]), PathFilter(r"example/.*"), [StoreDelegate(store)]
        )
        child = InterceptingResolver(
            parent,
            PathFilter(r"example/Hello\.py"),
            [StaticDelegate({"example/Hello.py": b"from example.Greeter import greet\n"})],
        )

        hello = child.resolve_module("example.Hello")

        assert hello.__resolver__ is child
        assert hello.greet is parent.resolve_module("example.Greeter").greet
        assert child.defined_names() == ["example.Hello"]

    def test_missing_import_fails_materialization(self, resolver, store):
        store.put("example/Broken.py", b"import example.Missing\n")
        with pytest.raises(MaterializationError, match="example.Missing"):
            resolver.resolve_module("example.Broken")


class TestParentErrors:
    class RaisingParent:
        """Parent whose module lookups fail with a plain ModuleNotFoundError."""

        def __init__(self, missing):
            self.missing = missing
            self.module_calls: list[str] = []

        def resolve_module(self, name):
            self.module_calls.append(name)
            raise ModuleNotFoundError(f"No module named '{self.missing}'", name=self.missing)

    def test_missing_dependency_is_reraised_unchanged(self):
        resolver = InterceptingResolver(self.RaisingParent("dependency"), PathFilter(r"example/.*"), [])
        with pytest.raises(ModuleNotFoundError) as exc_info:
            resolver.resolve_module("other.Tool")
        assert not isinstance(exc_info.value, ModuleNotResolvedError)
        assert exc_info.value.name == "dependency"

    @pytest.mark.parametrize("missing", ["other.Tool", "other"])
    def test_missing_module_becomes_not_resolved(self, missing):
        resolver = InterceptingResolver(self.RaisingParent(missing), PathFilter(r"example/.*"), [])
        with pytest.raises(ModuleNotResolvedError) as exc_info:
            resolver.resolve_module("other.Tool")
        assert exc_info.value.name == "other.Tool"

    def test_failures_are_not_cached(self):
        parent = self.RaisingParent("dependency")
        resolver = InterceptingResolver(parent, PathFilter(r"example/.*"), [])
        for _ in range(2):
            with pytest.raises(ModuleNotFoundError):
                resolver.resolve_module("other.Tool")
        assert parent.module_calls == ["other.Tool", "other.Tool"]


class TestHierarchy:
    """A child resolver shadows its parent resolver."""

    @pytest.fixture
    def parent(self):
        delegate = StaticDelegate(
            {
                "example/parent.txt": b"super",
                "example/Parent.py": b"ORIGIN = 'parent'\n",
                "example/Hello.py": b"ORIGIN = 'parent'\n",
            },
            {
                "example/parent.txt": ["http://example.com/super.txt"],
                "example/hello.txt": ["http://example.com/hello.txt"],
            },
        )
        return InterceptingResolver(
            SystemResolver(resource_roots=[]), PathFilter(r"example/.*"), [delegate]
        )

    @pytest.fixture
    def child(self, parent):
        delegate = StaticDelegate(
            {"example/parent.txt": b"sub", "example/Hello.py": b"ORIGIN = 'child'\n"},
            {"example/parent.txt": ["http://example.com/sub.txt"]},
        )
        return InterceptingResolver(parent, PathFilter(r".*"), [delegate])

    def test_child_location_shadows_parent(self, child):
        assert child.resolve_resource_location("example/parent.txt") == "http://example.com/sub.txt"

    def test_parent_location_used_when_child_has_none(self, child):
        assert child.resolve_resource_location("example/hello.txt") == "http://example.com/hello.txt"

    def test_all_locations_list_child_before_parent(self, child):
        assert child.resolve_all_resource_locations("example/parent.txt") == [
            "http://example.com/sub.txt",
            "http://example.com/super.txt",
        ]

    def test_all_locations_without_child_match_are_parents(self, child):
        assert child.resolve_all_resource_locations("example/hello.txt") == [
            "http://example.com/hello.txt"
        ]

    def test_child_stream_shadows_parent(self, child):
        assert child.resolve_resource_stream("example/parent.txt").read() == b"sub"

    def test_child_module_shadows_parent(self, child, parent):
        module = child.resolve_module("example.Hello")
        assert module.ORIGIN == "child"
        assert module.__resolver__ is child
        assert parent.defined_names() == []

    def test_parent_defines_what_child_lacks(self, child, parent):
        module = child.resolve_module("example.Parent")
        assert module.ORIGIN == "parent"
        assert module.__resolver__ is parent
        assert child.resolve_module("example.Parent") is parent.resolve_module("example.Parent")

    def test_not_found_anywhere(self, child):
        with pytest.raises(ModuleNotResolvedError):
            child.resolve_module("example.Nowhere")
        assert child.resolve_resource_stream("example/nowhere.txt") is None


class TestBackendFaults:
    def test_failing_delegate_falls_through(self, stub_parent, hello_source):
        class Down(Delegate):
            capabilities = Capability.MODULE_BYTES | Capability.RESOURCE_STREAM

            def resolve_module_bytes(self, name):
                raise BackendError("down")

            def resolve_resource_stream(self, path):
                raise BackendError("down")

        backup = StaticDelegate({"example/Hello.py": hello_source, "example/a.txt": b"backup"})
        resolver = InterceptingResolver(stub_parent, PathFilter(r"example/.*"), [Down(), backup])

        assert resolver.resolve_module("example.Hello").main() == "Hello, world!"
        assert resolver.resolve_resource_stream("example/a.txt").read() == b"backup"

    def test_only_failing_delegate_falls_back_to_parent(self, stub_parent, parent_module):
        class Down(Delegate):
            capabilities = Capability.MODULE_BYTES

            def resolve_module_bytes(self, name):
                raise OSError("down")

        stub_parent.modules["example.Parent"] = parent_module
        resolver = InterceptingResolver(stub_parent, PathFilter(r"example/.*"), [Down()])
        assert resolver.resolve_module("example.Parent") is parent_module


class TestAdoptParentSources:
    def test_parent_source_is_defined_locally(self, stub_parent, parent_module):
        stub_parent.modules["example.Parent"] = parent_module
        stub_parent.contents["example/Parent.py"] = b"ORIGIN = 'adopted'\n"
        resolver = InterceptingResolver(
            stub_parent, PathFilter(r"example/.*"), [StaticDelegate()], adopt_parent_sources=True
        )

        module = resolver.resolve_module("example.Parent")

        assert module is not parent_module
        assert module.ORIGIN == "adopted"
        assert module.__resolver__ is resolver
        assert resolver.is_defined_here("example.Parent") is True
        assert stub_parent.module_calls == []
        assert resolver.resolve_module("example.Parent") is module

    def test_delegates_still_win(self, stub_parent):
        stub_parent.contents["example/Hello.py"] = b"ORIGIN = 'parent'\n"
        delegate = StaticDelegate({"example/Hello.py": b"ORIGIN = 'child'\n"})
        resolver = InterceptingResolver(
            stub_parent, PathFilter(r"example/.*"), [delegate], adopt_parent_sources=True
        )
        assert resolver.resolve_module("example.Hello").ORIGIN == "child"

    def test_without_parent_source_falls_back_to_parent_module(self, stub_parent, parent_module):
        stub_parent.modules["example.Parent"] = parent_module
        resolver = InterceptingResolver(
            stub_parent, PathFilter(r"example/.*"), [StaticDelegate()], adopt_parent_sources=True
        )
        assert resolver.resolve_module("example.Parent") is parent_module

    def test_rejected_names_are_not_adopted(self, stub_parent, parent_module):
        stub_parent.modules["other.Parent"] = parent_module
        stub_parent.contents["other/Parent.py"] = b"ORIGIN = 'adopted'\n"
        resolver = InterceptingResolver(
            stub_parent, PathFilter(r"example/.*"), [StaticDelegate()], adopt_parent_sources=True
        )
        assert resolver.resolve_module("other.Parent") is parent_module


class TestConcurrency:
    def test_concurrent_first_resolution_defines_once(self, hello_source):
        class SlowDelegate(Delegate):
            capabilities = Capability.MODULE_BYTES

            def resolve_module_bytes(self, name):
                time.sleep(0.01)
                return hello_source

        materializer = CountingMaterializer()
        resolver = InterceptingResolver(
            SystemResolver(resource_roots=[]),
            PathFilter(r"example/.*"),
            [SlowDelegate()],
            materializer=materializer,
        )
        workers = 8
        barrier = threading.Barrier(workers)

        def resolve(_):
            barrier.wait()
            return resolver.resolve_module("example.Hello")

        with ThreadPoolExecutor(max_workers=workers) as pool:
            modules = list(pool.map(resolve, range(workers)))

        assert all(module is modules[0] for module in modules)
        assert materializer.count == 1

    def test_concurrent_parent_resolution_asks_parent_once(self, stub_parent):
        stub_parent.modules["other.Parent"] = types.ModuleType("other.Parent")
        resolver = InterceptingResolver(stub_parent, PathFilter(r"example/.*"), [])
        workers = 8
        barrier = threading.Barrier(workers)

        def resolve(_):
            barrier.wait()
            return resolver.resolve_module("other.Parent")

        with ThreadPoolExecutor(max_workers=workers) as pool:
            modules = list(pool.map(resolve, range(workers)))

        assert all(module is modules[0] for module in modules)
        assert stub_parent.module_calls == ["other.Parent"]


class TestResourceValidation:
    @pytest.mark.parametrize(
        "operation",
        ["resolve_resource_location", "resolve_all_resource_locations", "resolve_resource_stream"],
    )
    def test_empty_path_is_rejected(self, resolver, operation):
        with pytest.raises(InvalidArgumentError):
            getattr(resolver, operation)("")
