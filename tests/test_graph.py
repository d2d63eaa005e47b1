import pytest

from avlstore.errors import GraphError
from avlstore.graph import Graph


@pytest.fixture
def g():
    graph = Graph()
    for name in ("a", "b", "c", "d"):
        graph.add_vertex(name)
    graph.add_edge("a", "b", 1.0)
    graph.add_edge("a", "c", 2.5)
    graph.add_edge("b", "d", 4)
    graph.add_edge("c", "d", 0)
    return graph


def test_vertices_and_costs(g: Graph):
    assert len(g) == 4
    assert g.vertices() == ["a", "b", "c", "d"]
    assert g.cost("a", "c") == 2.5
    assert g.cost("c", "d") == 0
    assert g.cost("d", "a") == -1


def test_duplicate_and_missing_vertices(g: Graph):
    with pytest.raises(GraphError):
        g.add_vertex("a")
    with pytest.raises(GraphError):
        g.remove_vertex("zz")
    with pytest.raises(GraphError):
        g.cost("a", "zz")


def test_invalid_edges(g: Graph):
    with pytest.raises(GraphError):
        g.add_edge("a", "a", 1)
    with pytest.raises(GraphError):
        g.add_edge("a", "d", -2)
    with pytest.raises(GraphError):
        g.add_edge("a", "zz", 1)


def test_remove_edge(g: Graph):
    g.remove_edge("a", "b")
    assert g.cost("a", "b") == -1
    assert g.neighbors("a") == {"c": 2.5}


def test_remove_vertex_purges_edges_and_reuses_index(g: Graph):
    g.remove_vertex("b")
    assert "b" not in g
    assert g.neighbors("a") == {"c": 2.5}

    g.add_vertex("e")
    assert g.names.get("e") == 1
    assert g.cost("a", "e") == -1
    assert g.cost("e", "d") == -1
    assert g.matrix.width == 4


def test_traversals(g: Graph):
    assert g.bfs("a") == ["a", "b", "c", "d"]
    assert g.dfs("a") == ["a", "b", "d", "c"]
    assert g.bfs("d") == ["d"]
    with pytest.raises(GraphError):
        g.dfs("zz")


def test_clear(g: Graph):
    g.clear()
    assert len(g) == 0
    g.add_vertex("x")
    assert g.names.get("x") == 0
