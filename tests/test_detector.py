"""
Tests for the CircularReferenceDetector component.
"""

import pytest

from schema_deref_engine.core.reference_resolver.detector import CircularReferenceDetector
from schema_deref_engine.core.reference_resolver.errors import CircularReferenceError, SelfReferenceError
from schema_deref_engine.core.reference_resolver.models import (
    LocalReferenceEdge,
    ReferenceDescriptor,
    ResolutionState,
)


def _edge(from_path, to_path):
    return LocalReferenceEdge(from_path=from_path, to_path=to_path, destination=f"#/{to_path}")


class TestStaticCheck:
    """Test suite for the static local-cycle check."""

    def setup_method(self):
        """Set up test fixtures."""
        self.detector = CircularReferenceDetector()

    def test_collect_local_edges(self):
        """Test that only local references are collected, with their paths."""
        document = {
            "definitions": {"a": {"type": "string"}},
            "properties": {
                "x": {"$ref": "#/definitions/a"},
                "y": {"$ref": "other.json#/definitions/a"},
                "z": {"items": [{"$ref": "#/definitions/a"}]},
            },
        }

        edges = self.detector.collect_local_edges(document)

        assert [(e.from_path, e.to_path) for e in edges] == [
            ("properties/x", "definitions/a"),
            ("properties/z/items/0", "definitions/a"),
        ]

    @pytest.mark.parametrize("from_path, destination", [
        ("properties/a", "#"),
        ("properties/a", "#/"),
        ("properties/a", "#/properties/a"),
        ("definitions/node/properties/child", "#/definitions/node"),
        ("definitions/node", "#/definitions/node/properties/child"),
        # Plain string prefix: flagged although the paths are unrelated
        ("properties/a", "#/properties/ab"),
    ])
    def test_self_references(self, from_path, destination):
        """Test the root, identity, ancestor and descendant self-reference rules."""
        to_path = destination[2:] if destination.startswith("#/") else ""
        edge = LocalReferenceEdge(from_path=from_path, to_path=to_path, destination=destination)

        assert self.detector.is_self_reference(edge)

    def test_sibling_reference_is_not_self_reference(self):
        """Test that references between unrelated paths pass."""
        assert not self.detector.is_self_reference(_edge("properties/x", "definitions/a"))

    def test_find_cycle_edge(self):
        """Test that the edge closing a cycle is reported."""
        edges = [_edge("a", "b"), _edge("b", "c"), _edge("c", "a")]

        assert self.detector.find_cycle_edge(edges) == edges[2]

    def test_find_cycle_edge_dag(self):
        """Test that a DAG has no cycle edge, even with shared targets."""
        edges = [_edge("a", "c"), _edge("b", "c"), _edge("c", "d")]

        assert self.detector.find_cycle_edge(edges) is None

    def test_find_cyclic_paths(self):
        """Test that all references on a cycle are reported, and only those."""
        edges = [_edge("a", "b"), _edge("b", "a"), _edge("x", "a")]

        assert self.detector.find_cyclic_paths(edges) == {"a", "b"}

    def test_check_raises_self_reference(self):
        """Test that a reference to an ancestor raises SelfReferenceError."""
        document = {"definitions": {"node": {"properties": {"child": {"$ref": "#/definitions/node"}}}}}

        with pytest.raises(SelfReferenceError, match="Circular self reference"):
            self.detector.check_local_circular(document)

    def test_check_raises_circular(self):
        """Test that a dependency cycle raises CircularReferenceError naming the edge."""
        document = {"definitions": {"a": {"$ref": "#/definitions/b"}, "b": {"$ref": "#/definitions/a"}}}

        with pytest.raises(CircularReferenceError, match="from definitions/b to definitions/a"):
            self.detector.check_local_circular(document)

    def test_check_tolerant_returns_keep_paths(self):
        """Test that tolerant mode reports what to keep instead of raising."""
        document = {
            "definitions": {
                "a": {"$ref": "#/definitions/b"},
                "b": {"$ref": "#/definitions/a"},
                "node": {"properties": {"child": {"$ref": "#/definitions/node"}}},
                "plain": {"type": "string"},
            },
            "properties": {"p": {"$ref": "#/definitions/plain"}},
        }

        keep = self.detector.check_local_circular(document, tolerant=True)

        assert keep == frozenset({
            "definitions/a",
            "definitions/b",
            "definitions/node/properties/child",
        })

    def test_check_clean_document(self):
        """Test that documents without local cycles pass."""
        document = {"definitions": {"a": {"type": "string"}}, "properties": {"p": {"$ref": "#/definitions/a"}}}

        assert self.detector.check_local_circular(document) == frozenset()
        assert self.detector.check_local_circular({"no": "refs"}) == frozenset()


class TestDynamicCheck:
    """Test suite for the resolution history check."""

    def setup_method(self):
        """Set up test fixtures."""
        self.detector = CircularReferenceDetector()
        self.state = ResolutionState(fingerprint="abc", base_directory="/tmp")

    def test_history_keys(self):
        """Test local keys are document-scoped and file keys use the canonical path."""
        local = ReferenceDescriptor(type="local", destination="#/definitions/a")
        file_ref = ReferenceDescriptor(type="file", destination="common.json#/a")
        custom = ReferenceDescriptor(type="mem", destination="mem:users#/a")

        assert self.detector.history_key(local, "abc") == "abc:#/definitions/a"
        assert self.detector.history_key(file_ref, "abc", "/schemas/common.json") == "file:/schemas/common.json"
        assert self.detector.history_key(custom, "abc", "mem:users") == "mem:users"

    def test_whole_document_reference_has_no_key(self):
        """Test that '#' is always treated as circular."""
        descriptor = ReferenceDescriptor(type="local", destination="#")

        key = self.detector.history_key(descriptor, "abc")

        assert key is None
        assert not self.detector.enter(self.state, key)

    def test_enter_and_leave(self):
        """Test that duplicates are refused until the key is popped."""
        assert self.detector.enter(self.state, "abc:#/a")
        assert not self.detector.enter(self.state, "abc:#/a")

        self.detector.leave(self.state, "abc:#/a")

        assert self.state.history == []
        assert self.detector.enter(self.state, "abc:#/a")

    def test_record_kept(self):
        """Test that statically kept references are recorded once each without raising."""
        self.detector.record_kept(self.state, "#/definitions/b")
        self.detector.record_kept(self.state, "#/definitions/b")

        assert self.state.circular
        assert self.state.circular_refs == ["#/definitions/b"]
        assert self.state.error is None

    def test_record_circular_strict(self):
        """Test that a live cycle raises and is recorded on the state."""
        with pytest.raises(CircularReferenceError, match="circular references found: a.json"):
            self.detector.record_circular(self.state, "a.json", tolerant=False)

        assert self.state.circular
        assert isinstance(self.state.error, CircularReferenceError)

    def test_record_circular_tolerant(self):
        """Test that tolerant mode only records the cycle."""
        self.detector.record_circular(self.state, "a.json", tolerant=True)

        assert self.state.circular
        assert self.state.circular_refs == ["a.json"]
        assert self.state.error is None
