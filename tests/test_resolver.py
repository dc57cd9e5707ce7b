"""Tests for composition resolution.

Covers:
- Insert substitution and left-to-right insert ordering
- Concatenation ordering by owning node name
- Exclusion pruning (no fetch for excluded ids)
- Context isolation between siblings and from the caller
- Cycle and deadline guards
"""

import time

import pytest

from janus_lite.errors import CycleDetectedError, NotFoundError, ResolutionTimeoutError, ValidationError
from janus_lite.models import EdgeOperation, IncludesEdge, ResolveOptions
from janus_lite.resolver import resolve, substitute_placeholders


class TestSubstitutePlaceholders:
    """Test literal {{key}} replacement."""

    def test_replaces_known_keys(self):
        assert substitute_placeholders("Hi {{a}} and {{b}}", {"a": "x", "b": "y"}) == "Hi x and y"

    def test_unknown_placeholder_left_alone(self):
        assert substitute_placeholders("Hi {{missing}}", {"a": "x"}) == "Hi {{missing}}"

    def test_repeated_placeholder(self):
        assert substitute_placeholders("{{a}}-{{a}}", {"a": "z"}) == "z-z"

    def test_substituted_value_not_rescanned(self):
        """A placeholder carried in by a value stays literal."""
        assert substitute_placeholders("{{a}}", {"a": "{{b}}", "b": "X"}) == "{{b}}"
        assert substitute_placeholders("{{b}} {{a}}", {"a": "{{b}}", "b": "X"}) == "X {{b}}"


class TestInsert:
    """Test insert edges."""

    def test_hello_alice(self, memory_store):
        """Parent 'Hello {{name}}' with insert child 'Alice' renders 'Hello Alice'."""
        parent = memory_store.add("greeting", "Hello {{name}}")
        child = memory_store.add("user-name", "Alice")
        memory_store.link_versions(parent, child, IncludesEdge.insert("name"))

        assert resolve(memory_store, parent) == "Hello Alice"

    def test_later_insert_sees_earlier(self, memory_store):
        """Inserts run left to right; the second child can use the first key."""
        parent = memory_store.add("letter", "{{full}}")
        first = memory_store.add("first-name", "Ada")
        second = memory_store.add("full-name", "{{first}} Lovelace")
        memory_store.link_versions(parent, first, IncludesEdge.insert("first"))
        memory_store.link_versions(parent, second, IncludesEdge.insert("full"))

        assert resolve(memory_store, parent) == "Ada Lovelace"

    def test_earlier_insert_cannot_see_later(self, memory_store):
        parent = memory_store.add("letter", "{{full}}")
        second = memory_store.add("full-name", "{{first}} Lovelace")
        first = memory_store.add("first-name", "Ada")
        memory_store.link_versions(parent, second, IncludesEdge.insert("full"))
        memory_store.link_versions(parent, first, IncludesEdge.insert("first"))

        assert resolve(memory_store, parent) == "{{first}} Lovelace"

    def test_initial_context_used(self, memory_store):
        version = memory_store.add("greeting", "Hello {{name}}")
        assert resolve(memory_store, version, {"name": "Bob"}) == "Hello Bob"

    def test_insert_overrides_initial_context(self, memory_store):
        parent = memory_store.add("greeting", "Hello {{name}}")
        child = memory_store.add("user-name", "Alice")
        memory_store.link_versions(parent, child, IncludesEdge.insert("name"))

        assert resolve(memory_store, parent, {"name": "Bob"}) == "Hello Alice"

    def test_invalid_stored_key_raises(self, memory_store):
        parent = memory_store.add("greeting", "Hello {{1bad}}")
        child = memory_store.add("user-name", "Alice")
        memory_store.connect(parent, child, IncludesEdge(EdgeOperation.INSERT, "1bad"))

        with pytest.raises(ValidationError):
            resolve(memory_store, parent)

    def test_insert_without_key_skipped(self, memory_store):
        parent = memory_store.add("greeting", "Hello")
        child = memory_store.add("user-name", "Alice")
        memory_store.connect(parent, child, IncludesEdge(EdgeOperation.INSERT, None))

        assert resolve(memory_store, parent) == "Hello"
        assert child not in memory_store.fetched


class TestConcatenate:
    """Test concatenate edges."""

    def test_ordered_by_node_name(self, memory_store):
        """zebra, apple, middle resolve as apple, middle, zebra."""
        parent = memory_store.add("parent", None)
        for name in ("zebra", "apple", "middle"):
            child = memory_store.add(name, name.upper())
            memory_store.link_versions(parent, child, IncludesEdge.concatenate())

        assert resolve(memory_store, parent) == "APPLE\nMIDDLE\nZEBRA"

    def test_own_content_first(self, memory_store):
        parent = memory_store.add("parent", "Intro")
        child = memory_store.add("body", "Body")
        memory_store.link_versions(parent, child, IncludesEdge.concatenate())

        assert resolve(memory_store, parent) == "Intro\nBody"

    def test_empty_children_dropped(self, memory_store):
        parent = memory_store.add("parent", "Intro")
        empty = memory_store.add("a-empty", "")
        full = memory_store.add("b-full", "Text")
        memory_store.link_versions(parent, empty, IncludesEdge.concatenate())
        memory_store.link_versions(parent, full, IncludesEdge.concatenate())

        assert resolve(memory_store, parent) == "Intro\nText"

    def test_children_see_insert_context(self, memory_store):
        parent = memory_store.add("parent", "Dear {{name}},")
        name = memory_store.add("user-name", "Alice")
        footer = memory_store.add("footer", "Bye {{name}}")
        memory_store.link_versions(parent, name, IncludesEdge.insert("name"))
        memory_store.link_versions(parent, footer, IncludesEdge.concatenate())

        assert resolve(memory_store, parent) == "Dear Alice,\nBye Alice"

    def test_all_empty(self, memory_store):
        parent = memory_store.add("parent", None)
        child = memory_store.add("child", None)
        memory_store.link_versions(parent, child, IncludesEdge.concatenate())

        assert resolve(memory_store, parent) == ""


class TestExclusion:
    """Test excludeVersionIds pruning."""

    def test_excluded_root_not_fetched(self, memory_store):
        version = memory_store.add("greeting", "Hello")

        result = resolve(memory_store, version, options=ResolveOptions(exclude_version_ids=[version]))

        assert result == ""
        assert memory_store.fetched == []

    def test_excluded_child_not_fetched(self, memory_store):
        parent = memory_store.add("parent", "Intro")
        child = memory_store.add("body", "Body")
        memory_store.link_versions(parent, child, IncludesEdge.concatenate())

        result = resolve(memory_store, parent, options=ResolveOptions(exclude_version_ids={child}))

        assert result == "Intro"
        assert child not in memory_store.fetched

    def test_excluded_insert_is_empty_string(self, memory_store):
        parent = memory_store.add("greeting", "Hello {{name}}!")
        child = memory_store.add("user-name", "Alice")
        memory_store.link_versions(parent, child, IncludesEdge.insert("name"))

        result = resolve(memory_store, parent, options=ResolveOptions(exclude_version_ids={child}))

        assert result == "Hello !"


class TestContextIsolation:
    """Test that the caller's context and sibling branches stay independent."""

    def test_caller_context_not_mutated(self, memory_store):
        parent = memory_store.add("greeting", "Hello {{name}}")
        child = memory_store.add("user-name", "Alice")
        memory_store.link_versions(parent, child, IncludesEdge.insert("name"))
        context = {"other": "x"}

        resolve(memory_store, parent, context)

        assert context == {"other": "x"}

    def test_sibling_inserts_do_not_leak(self, memory_store):
        """An insert made inside one concatenate child is invisible to the next."""
        parent = memory_store.add("parent", None)
        left = memory_store.add("a-left", "{{who}}")
        right = memory_store.add("b-right", "[{{who}}]")
        who = memory_store.add("who", "Alice")
        memory_store.link_versions(parent, left, IncludesEdge.concatenate())
        memory_store.link_versions(parent, right, IncludesEdge.concatenate())
        memory_store.link_versions(left, who, IncludesEdge.insert("who"))

        assert resolve(memory_store, parent) == "Alice\n[{{who}}]"


class TestGuards:
    """Test cycle detection, diamonds and deadlines."""

    def test_cycle_detected(self, memory_store):
        a = memory_store.add("a", "A")
        b = memory_store.add("b", "B")
        memory_store.connect(a, b, IncludesEdge.concatenate())
        memory_store.connect(b, a, IncludesEdge.concatenate())

        with pytest.raises(CycleDetectedError) as exc_info:
            resolve(memory_store, a)
        assert exc_info.value.version_id == a

    def test_diamond_fetched_twice(self, memory_store):
        root = memory_store.add("root", None)
        left = memory_store.add("left", None)
        right = memory_store.add("right", None)
        shared = memory_store.add("shared", "S")
        memory_store.link_versions(root, left, IncludesEdge.concatenate())
        memory_store.link_versions(root, right, IncludesEdge.concatenate())
        memory_store.link_versions(left, shared, IncludesEdge.concatenate())
        memory_store.link_versions(right, shared, IncludesEdge.concatenate())

        assert resolve(memory_store, root) == "S\nS"
        assert memory_store.fetched.count(shared) == 2

    def test_deadline_passed(self, memory_store):
        version = memory_store.add("greeting", "Hello")
        options = ResolveOptions(deadline=time.monotonic() - 1)

        with pytest.raises(ResolutionTimeoutError):
            resolve(memory_store, version, options=options)

    def test_missing_version(self, memory_store):
        with pytest.raises(NotFoundError):
            resolve(memory_store, "no-such-version")

    def test_include_tags_does_not_filter(self, memory_store):
        version = memory_store.add("greeting", "Hello")
        options = ResolveOptions(include_tags=["unrelated"])

        assert resolve(memory_store, version, options=options) == "Hello"
