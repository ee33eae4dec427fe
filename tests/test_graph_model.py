"""Tests for Node, Edge and the FlowGraph snapshot."""

import pytest

from flowdiagram.errors import GraphValidationError
from flowdiagram.graph.edge import Edge, FlowGraph
from flowdiagram.graph.node import Node, NodeKind


class TestNode:
    def test_label_defaults_to_kind(self):
        node = Node(kind=NodeKind.OUTPUT)
        assert node.label == "output"
        assert node.display_name == "output"

    def test_empty_label_falls_back_to_id(self):
        node = Node.model_validate({"id": "n-1", "type": "input", "label": ""})
        assert node.display_name == "n-1"

    def test_legacy_js_kind_is_script(self):
        node = Node.model_validate({"id": "a", "type": "js", "code": "return context"})
        assert node.kind == NodeKind.SCRIPT
        assert node.script_code == "return context"

    def test_code_ignored_for_non_script_kinds(self):
        node = Node.model_validate({"id": "a", "type": "input", "code": "raise ValueError()"})
        assert node.script_code == ""

    def test_ids_are_generated_and_unique(self):
        assert Node(kind="input").id != Node(kind="input").id

    def test_id_is_immutable(self):
        node = Node(kind="input")
        with pytest.raises(Exception):
            node.id = "other"

    def test_unknown_kind_rejected(self):
        with pytest.raises(ValueError):
            Node.model_validate({"type": "teleport"})

    def test_serializes_kind_as_type(self):
        node = Node(id="a", kind="script", code="pass")
        data = node.model_dump(mode="json", by_alias=True)
        assert data["type"] == "script"
        assert "kind" not in data


class TestEdge:
    def test_from_to_aliases(self):
        edge = Edge.model_validate({"from": "a", "to": "b"})
        assert (edge.source, edge.target) == ("a", "b")
        assert edge.model_dump(by_alias=True) == {"from": "a", "to": "b"}


class TestFlowGraph:
    def _nodes(self, *ids):
        return [{"id": node_id, "type": "input"} for node_id in ids]

    def test_zero_indegree_in_collection_order(self):
        graph = FlowGraph(self._nodes("c", "a", "b"), [{"from": "a", "to": "b"}])
        assert [n.id for n in graph.nodes_with_zero_indegree()] == ["c", "a"]

    def test_outgoing_preserves_edge_order(self):
        graph = FlowGraph(
            self._nodes("a", "b", "c"),
            [{"from": "a", "to": "c"}, {"from": "a", "to": "b"}],
        )
        assert graph.outgoing("a") == ["c", "b"]
        assert graph.outgoing("b") == []

    def test_dangling_edges_ignored(self):
        graph = FlowGraph(
            self._nodes("a", "b"),
            [{"from": "ghost", "to": "b"}, {"from": "a", "to": "missing"}],
        )
        assert graph.indegree("b") == 0
        assert graph.outgoing("a") == []
        assert [n.id for n in graph.nodes_with_zero_indegree()] == ["a", "b"]
        assert len(graph.dangling_edges()) == 2

    def test_self_loop_and_duplicates_tolerated(self):
        graph = FlowGraph(
            self._nodes("a", "b"),
            [{"from": "a", "to": "a"}, {"from": "a", "to": "b"}, {"from": "a", "to": "b"}],
        )
        assert graph.indegree("a") == 1
        assert graph.indegree("b") == 2
        assert graph.outgoing("a") == ["a", "b", "b"]

    def test_duplicate_node_ids_rejected(self):
        with pytest.raises(GraphValidationError, match="Duplicate node id"):
            FlowGraph(self._nodes("a", "a"))

    def test_invalid_payload_rejected(self):
        with pytest.raises(GraphValidationError):
            FlowGraph([{"id": "a"}])
        with pytest.raises(GraphValidationError):
            FlowGraph(["not-a-node"])

    def test_snapshot_is_isolated_from_caller(self):
        nodes = [Node(id="a", kind="input", label="before")]
        edges = [{"from": "a", "to": "a"}]
        graph = FlowGraph(nodes, edges)

        nodes[0].label = "after"
        nodes.append(Node(id="b", kind="output"))
        edges.clear()

        assert graph.get_node("a").label == "before"
        assert "b" not in graph
        assert len(graph.edges) == 1
