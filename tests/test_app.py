import pytest

from avlstore import app as app_module


@pytest.fixture
def client():
    app_module.reset_state()
    app_module.app.config["TESTING"] = True
    with app_module.app.test_client() as c:
        yield c
    app_module.reset_state()


def test_status_on_empty_store(client):
    r = client.get("/api/status")
    body = r.get_json()
    assert r.status_code == 200
    assert body["ok"] is True
    assert body["data"]["keys_in_store"] == 0
    assert body["data"]["tree_height"] == 0


def test_put_get_delete_roundtrip(client):
    r = client.put("/api/kv/alpha", json={"value": 1})
    assert r.get_json()["data"]["replaced"] is False

    r = client.put("/api/kv/alpha", json={"value": {"nested": True}})
    assert r.get_json()["data"]["old_value"] == 1

    r = client.get("/api/kv/alpha")
    assert r.get_json()["data"] == {"key": "alpha", "value": {"nested": True}}

    r = client.delete("/api/kv/alpha")
    assert r.get_json()["data"]["deleted"] is True
    assert client.get("/api/kv/alpha").status_code == 404
    assert client.delete("/api/kv/alpha").status_code == 404


def test_put_requires_value(client):
    r = client.put("/api/kv/k", json={})
    assert r.status_code == 400
    assert r.get_json()["ok"] is False


def test_list_is_ordered_and_limited(client):
    for key in ("pear", "apple", "fig"):
        client.put(f"/api/kv/{key}", json={"value": key.upper()})
    body = client.get("/api/kv").get_json()["data"]
    assert [row["key"] for row in body["rows"]] == ["apple", "fig", "pear"]

    body = client.get("/api/kv?limit=2").get_json()["data"]
    assert body["count_returned"] == 2
    assert body["total"] == 3

    body = client.get("/api/kv?limit=zero").get_json()["data"]
    assert body["count_returned"] == 3


def test_graph_endpoints(client):
    for name in ("a", "b"):
        assert client.post("/api/graph/vertex", json={"name": name}).status_code == 200
    r = client.post("/api/graph/edge", json={"from": "a", "to": "b", "weight": 3})
    assert r.status_code == 200

    r = client.get("/api/graph/cost?from=a&to=b")
    assert r.get_json()["data"]["cost"] == 3.0

    r = client.get("/api/graph/neighbors/a")
    assert r.get_json()["data"]["neighbors"] == [{"neighbor": "b", "weight": 3.0}]

    assert client.delete("/api/graph/edge", json={"from": "a", "to": "b"}).status_code == 200
    assert client.get("/api/graph/cost?from=a&to=b").get_json()["data"]["cost"] == -1

    assert client.delete("/api/graph/vertex/b").status_code == 200
    assert client.get("/api/status").get_json()["data"]["graph_vertices"] == 1


def test_graph_errors_map_to_400(client):
    client.post("/api/graph/vertex", json={"name": "a"})
    r = client.post("/api/graph/vertex", json={"name": "a"})
    assert r.status_code == 400
    assert "already exists" in r.get_json()["error"]

    r = client.post("/api/graph/edge", json={"from": "a", "to": "a", "weight": 1})
    assert r.status_code == 400
    r = client.post("/api/graph/edge", json={"from": "a", "to": "b", "weight": "heavy"})
    assert r.status_code == 400
    assert client.get("/api/graph/cost?from=a").status_code == 400
    assert client.get("/api/graph/neighbors/zz").status_code == 400


def test_warm_start_loads_csv(client, csv_file):
    app_module.warm_start(csv_file)
    status = client.get("/api/status").get_json()["data"]
    assert status["store_loaded"] is True
    assert status["keys_in_store"] == 4
    assert client.get("/api/kv/3").get_json()["data"]["value"] == "4.5"


def test_warm_start_without_file(client, tmp_path):
    app_module.warm_start(str(tmp_path / "missing.csv"))
    assert client.get("/api/status").get_json()["data"]["store_loaded"] is False
