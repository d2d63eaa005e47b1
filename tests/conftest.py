from pytest import fixture

from avlstore.indexing import LEFT, RIGHT, ROOT, AVLTree, compare


def assert_avl(tree: AVLTree, comparator=compare) -> None:
    """Check heights, balance factors, back-references and in-order ordering."""
    nodes = tree._nodes

    def walk(index, parent, side):
        if index is None:
            return 0
        node = nodes[index]
        assert node is not None, f"handle {index} points at a released node"
        assert node._parent == parent and node._side == side, f"bad back-reference at {index}"
        lh = walk(node._left, index, LEFT)
        rh = walk(node._right, index, RIGHT)
        assert node._height == 1 + max(lh, rh), f"stale height at {node._element!r}"
        assert abs(rh - lh) <= 1, f"unbalanced at {node._element!r}"
        return node._height

    assert walk(tree._root, None, ROOT) == tree.height()

    elements = list(tree)
    assert len(elements) == len(tree)
    for a, b in zip(elements, elements[1:]):
        assert comparator(a, b) <= 0


@fixture
def tree():
    return AVLTree()


@fixture
def csv_file(tmp_path):
    path = tmp_path / "dataset.csv"
    path.write_text("key,value\n3,1.5\n1,2.0\nbad,3.0\n2,oops\n3,4.5\n", encoding="utf-8")
    return str(path)
