"""Tests for the graph-backed content store.

The backend is a MagicMock returning scripted QueryResults, so these tests
pin down the Cypher/parameter contract without a database. An end-to-end
class runs against embedded KuzuDB when it is installed.
"""

import tempfile
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from janus_lite.db.graph_persistence import GraphPersistence
from janus_lite.db.graph_protocol import QueryResult
from janus_lite.errors import ConflictError, NotFoundError, PersistenceError, ValidationError
from janus_lite.models import EdgeOperation, IncludesEdge
from janus_lite.persistence import ContentStore

CREATED = "2024-05-01T12:00:00.000000+00:00"


def _backend(*results):
    backend = MagicMock()
    backend.backend_name = "memgraph"
    backend.query.side_effect = [QueryResult(result_set=rows) for rows in results]
    return backend


def _calls(backend):
    return [(c.args[0], c.args[1] if len(c.args) > 1 else None) for c in backend.query.call_args_list]


class TestNodes:
    """Test node queries."""

    def test_store_name_and_protocol(self):
        store = GraphPersistence(_backend())
        assert store.store_name == "graph:memgraph"
        assert isinstance(store, ContentStore)

    def test_find_node_is_parameterized(self):
        backend = _backend([["n1", "greeting", "Says hello"]])
        store = GraphPersistence(backend)

        node = store.find_node_by_name("greeting")

        cypher, params = _calls(backend)[0]
        assert "$name" in cypher
        assert "greeting" not in cypher
        assert params == {"name": "greeting"}
        assert (node.id, node.name, node.description) == ("n1", "greeting", "Says hello")

    def test_find_node_missing(self):
        store = GraphPersistence(_backend([]))
        with pytest.raises(NotFoundError):
            store.find_node_by_name("greeting")

    def test_null_description_reads_empty(self):
        store = GraphPersistence(_backend([["n1", "greeting", None]]))
        assert store.find_node_by_name("greeting").description == ""

    def test_create_node(self):
        backend = _backend([], [])
        store = GraphPersistence(backend)

        node = store.create_node("greeting", "Says hello")

        cypher, params = _calls(backend)[1]
        assert cypher.startswith("CREATE (n:ContentNode")
        assert params == {"id": node.id, "name": "greeting", "description": "Says hello"}

    def test_create_node_conflict(self):
        backend = _backend([["n1"]])
        store = GraphPersistence(backend)

        with pytest.raises(ConflictError):
            store.create_node("greeting")
        assert backend.query.call_count == 1

    def test_create_node_invalid_name(self):
        backend = _backend()
        with pytest.raises(ValidationError):
            GraphPersistence(backend).create_node("Bad Name")
        backend.query.assert_not_called()

    def test_list_nodes(self):
        store = GraphPersistence(_backend([["1", "alpha", ""], ["2", "beta", "b"]]))
        assert [n.name for n in store.list_nodes()] == ["alpha", "beta"]

    def test_malformed_row(self):
        store = GraphPersistence(_backend([[None, "greeting", ""]]))
        with pytest.raises(ValidationError):
            store.find_node_by_name("greeting")


class TestVersions:
    """Test version queries."""

    def test_add_version(self):
        backend = _backend([["n1"]], [], [], [])
        store = GraphPersistence(backend)

        version = store.add_version("n1", "Hello", "first")

        calls = _calls(backend)
        create_cypher, create_params = calls[2]
        assert "CREATE (v:ContentNodeVersion" in create_cypher
        assert create_params["content"] == "Hello"
        assert create_params["commit_message"] == "first"
        assert create_params["created_at"].endswith("+00:00")
        link_cypher, link_params = calls[3]
        assert "VERSION_OF" in link_cypher
        assert link_params == {"version_id": version.id, "node_id": "n1"}
        assert backend.query.call_count == 4

    def test_add_version_chains_previous(self):
        """A second version points back at the version it superseded."""
        backend = _backend([["n1"]], [["v0", "Old", CREATED, ""]], [], [], [])
        store = GraphPersistence(backend)

        version = store.add_version("n1", "New", "second")

        cypher, params = _calls(backend)[4]
        assert "PREVIOUS_VERSION" in cypher
        assert params == {"version_id": version.id, "previous_id": "v0"}

    def test_list_versions_walks_chain(self):
        backend = _backend(
            [["n1"]],
            [["v2", "Two", "2024-05-02T12:00:00.000000+00:00", "second"]],
            [["v1", "One", CREATED, "first"]],
            [],
        )

        history = GraphPersistence(backend).list_versions("n1")

        assert [v.id for v in history] == ["v2", "v1"]
        calls = _calls(backend)
        assert "PREVIOUS_VERSION" in calls[2][0]
        assert calls[2][1] == {"version_id": "v2"}
        assert calls[3][1] == {"version_id": "v1"}

    def test_list_versions_empty_node(self):
        backend = _backend([["n1"]], [])
        assert GraphPersistence(backend).list_versions("n1") == []
        assert backend.query.call_count == 2

    def test_list_versions_missing_node(self):
        with pytest.raises(NotFoundError):
            GraphPersistence(_backend([])).list_versions("n1")

    def test_add_version_missing_node(self):
        backend = _backend([])
        with pytest.raises(NotFoundError):
            GraphPersistence(backend).add_version("n1", "Hello", "first")
        assert backend.query.call_count == 1

    def test_latest_version(self):
        store = GraphPersistence(_backend([["v1", "Hello", CREATED, "msg"]]))

        version = store.get_latest_version("n1")

        assert version.id == "v1"
        assert version.content == "Hello"
        assert version.created_at == datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def test_latest_version_orders_by_created_at(self):
        backend = _backend([])
        assert GraphPersistence(backend).get_latest_version("n1") is None
        cypher, _ = _calls(backend)[0]
        assert "ORDER BY v.createdAt DESC" in cypher

    def test_get_version_missing(self):
        with pytest.raises(NotFoundError):
            GraphPersistence(_backend([])).get_version("v1")

    def test_null_content_kept(self):
        version = GraphPersistence(_backend([["v1", None, CREATED, None]])).get_version("v1")
        assert version.content is None
        assert version.commit_message == ""


class TestEdges:
    """Test INCLUDES queries."""

    def test_get_children(self):
        backend = _backend([
            ["c1", "Alice", CREATED, "m", "insert", "name", "user-name"],
            ["c2", "Tail", CREATED, "m", "concatenate", None, "footer"],
        ])

        children = GraphPersistence(backend).get_children("p1")

        assert [c.version.id for c in children] == ["c1", "c2"]
        assert children[0].edge == IncludesEdge.insert("name")
        assert children[0].node_name == "user-name"
        assert children[1].edge.operation is EdgeOperation.CONCATENATE

    def test_unknown_operation_rejected(self):
        backend = _backend([["c1", "x", CREATED, "m", "append", None, "n"]])
        with pytest.raises(ValidationError):
            GraphPersistence(backend).get_children("p1")

    def test_link_versions(self):
        backend = _backend([["p1", "P", CREATED, ""]], [["c1", "C", CREATED, ""]], [])

        GraphPersistence(backend).link_versions("p1", "c1", IncludesEdge.insert("name"))

        cypher, params = _calls(backend)[2]
        assert "INCLUDES" in cypher
        assert params["parent_id"] == "p1"
        assert params["child_id"] == "c1"
        assert params["operation"] == "insert"
        assert params["key"] == "name"

    def test_link_bad_key_rejected_before_query(self):
        backend = _backend()
        with pytest.raises(ValidationError):
            GraphPersistence(backend).link_versions("p1", "c1", IncludesEdge.insert("1bad"))
        backend.query.assert_not_called()

    def test_link_self_rejected(self):
        with pytest.raises(ValidationError):
            GraphPersistence(_backend()).link_versions("p1", "p1", IncludesEdge.concatenate())

    def test_link_missing_child(self):
        backend = _backend([["p1", "P", CREATED, ""]], [])
        with pytest.raises(NotFoundError):
            GraphPersistence(backend).link_versions("p1", "c1", IncludesEdge.concatenate())
        assert backend.query.call_count == 2


class TestTags:
    """Test tag queries."""

    def test_create_tag(self):
        backend = _backend([], [])
        tag = GraphPersistence(backend).create_tag("intro", "Opening")
        _, params = _calls(backend)[1]
        assert params == {"id": tag.id, "name": "intro", "description": "Opening"}

    def test_create_tag_conflict(self):
        with pytest.raises(ConflictError):
            GraphPersistence(_backend([["t1"]])).create_tag("intro")

    def test_tag_node_creates_relationship(self):
        backend = _backend([["n1"]], [["t1"]], [], [])
        GraphPersistence(backend).tag_node("n1", "t1")
        cypher, params = _calls(backend)[3]
        assert "HAS_TAG" in cypher and "CREATE" in cypher
        assert params == {"node_id": "n1", "tag_id": "t1"}

    def test_tag_node_idempotent(self):
        backend = _backend([["n1"]], [["t1"]], [["t1"]])
        GraphPersistence(backend).tag_node("n1", "t1")
        assert backend.query.call_count == 3

    def test_tag_node_missing_tag(self):
        with pytest.raises(NotFoundError):
            GraphPersistence(_backend([["n1"]], [])).tag_node("n1", "t1")

    def test_get_node_tags(self):
        store = GraphPersistence(_backend([["n1"]], [["alpha"], ["beta"]]))
        assert store.get_node_tags("n1") == ["alpha", "beta"]


class TestErrorWrapping:
    """Test that driver failures become PersistenceError."""

    def test_driver_error_wrapped(self):
        backend = MagicMock()
        backend.backend_name = "memgraph"
        backend.query.side_effect = RuntimeError("connection reset")

        with pytest.raises(PersistenceError) as exc_info:
            GraphPersistence(backend).list_nodes()

        error = exc_info.value
        assert error.operation == "read"
        assert "connection reset" in error.original_message
        assert error.query.startswith("MATCH (n:ContentNode)")

    def test_close_closes_backend(self):
        backend = _backend()
        GraphPersistence(backend).close()
        backend.close.assert_called_once()


class TestKuzuRoundTrip:
    """End-to-end against embedded KuzuDB."""

    @pytest.fixture
    def store(self):
        try:
            from janus_lite.db.kuzu_backend import create_kuzu_backend
        except ImportError:
            pytest.skip("KuzuDB not installed")
        try:
            import kuzu  # noqa: F401
        except ImportError:
            pytest.skip("KuzuDB not installed")

        with tempfile.TemporaryDirectory() as tmpdir:
            backend = create_kuzu_backend(Path(tmpdir) / "janus_kuzu")
            yield GraphPersistence(backend)
            backend.close()

    def test_compose_and_resolve(self, store):
        from janus_lite.resolver import resolve

        greeting = store.create_node("greeting", "Says hello")
        name = store.create_node("user-name", "Who")
        parent = store.add_version(greeting.id, "Hello {{name}}", "first")
        child = store.add_version(name.id, "Alice", "first")
        store.link_versions(parent.id, child.id, IncludesEdge.insert("name"))

        assert store.find_node_by_name("greeting").id == greeting.id
        assert store.get_latest_version(greeting.id).id == parent.id
        assert resolve(store, parent.id) == "Hello Alice"

    def test_latest_version_wins(self, store):
        node = store.create_node("greeting")
        store.add_version(node.id, "One", "first")
        second = store.add_version(node.id, "Two", "second")

        assert store.get_latest_version(node.id).id == second.id

    def test_duplicate_node(self, store):
        store.create_node("greeting")
        with pytest.raises(ConflictError):
            store.create_node("greeting")

    def test_tags(self, store):
        node = store.create_node("greeting")
        tag = store.create_tag("intro", "Opening")
        store.tag_node(node.id, tag.id)
        store.tag_node(node.id, tag.id)

        assert store.get_node_tags(node.id) == ["intro"]
        assert [t.name for t in store.list_tags()] == ["intro"]

    def test_history_newest_first(self, store):
        node = store.create_node("greeting")
        first = store.add_version(node.id, "One", "first")
        second = store.add_version(node.id, "Two", "second")
        third = store.add_version(node.id, "Three", "third")

        history = store.list_versions(node.id)

        assert [v.id for v in history] == [third.id, second.id, first.id]
        assert [v.commit_message for v in history] == ["third", "second", "first"]

    def test_history_of_unversioned_node(self, store):
        node = store.create_node("greeting")
        assert store.list_versions(node.id) == []
