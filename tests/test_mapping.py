import pytest

from avlstore.mapping import AVLTreeMap
from tests.conftest import assert_avl


@pytest.fixture
def kv():
    m = AVLTreeMap()
    for k, v in [(3, "c"), (1, "a"), (2, "b")]:
        m.put(k, v)
    return m


def test_put_get_and_order(kv: AVLTreeMap):
    assert len(kv) == 3
    assert list(kv) == [1, 2, 3]
    assert list(kv.values()) == ["a", "b", "c"]
    assert list(kv.items()) == [(1, "a"), (2, "b"), (3, "c")]
    assert kv.get(2) == "b"
    assert kv.get(9) is None
    assert kv.get(9, "x") == "x"


def test_put_replaces_and_returns_old_value(kv: AVLTreeMap):
    assert kv.put(2, "B") == "b"
    assert kv.at(2) == "B"
    assert len(kv) == 3
    assert_avl(kv._tree)


def test_at_and_getitem_raise_for_missing_key(kv: AVLTreeMap):
    with pytest.raises(KeyError):
        kv.at(42)
    with pytest.raises(KeyError):
        kv[42]


def test_getitem_inserts_default():
    m = AVLTreeMap(default_factory=list)
    m["a"].append(1)
    m["a"].append(2)
    assert m.at("a") == [1, 2]
    assert "a" in m
    assert m.contains_key("a")


def test_setitem_and_delitem(kv: AVLTreeMap):
    kv[4] = "d"
    assert kv[4] == "d"
    del kv[4]
    assert 4 not in kv
    with pytest.raises(KeyError):
        del kv[4]


def test_remove_returns_value_or_none(kv: AVLTreeMap):
    assert kv.remove(1) == "a"
    assert kv.remove(1) is None
    assert list(kv) == [2, 3]


def test_remove_where_and_for_each():
    m = AVLTreeMap()
    for k in range(20):
        m.put(k, k * k)
    assert m.remove_where(lambda k: k % 2 == 0) == 10
    assert list(m) == list(range(1, 20, 2))
    seen = []
    m.for_each(seen.append)
    assert seen == [k * k for k in range(1, 20, 2)]
    assert_avl(m._tree)


def test_height_and_str(kv: AVLTreeMap):
    assert kv.height() == 2
    assert str(kv) == "[(1:a)(2:b)(3:c)]"
    assert repr(kv) == "AVLTreeMap({1: 'a', 2: 'b', 3: 'c'})"
    kv.clear()
    assert kv.is_empty()
    assert kv.height() == 0
