import csv
import logging
import os
import time
from typing import Any, Dict, List, Optional

from flask import Flask, jsonify, request

from avlstore.config import DEFAULT_CSV_PATH, DEFAULT_LIMIT, LOGGING_CONFIG, MAX_LIMIT
from avlstore.errors import GraphError
from avlstore.graph import Graph
from avlstore.mapping import AVLTreeMap

logger = logging.getLogger(__name__)

app = Flask(__name__)

store = AVLTreeMap()
g = Graph()

STATE: Dict[str, Any] = {"csv_path": None, "store_loaded": False}


def ok(data=None, **extra):
    payload = {"ok": True}
    if data is not None:
        payload["data"] = data
    payload.update(extra)
    return jsonify(payload)

def err(message: str, status: int = 400, **extra):
    payload = {"ok": False, "error": message}
    payload.update(extra)
    return jsonify(payload), status

def parse_limit() -> int:
    """Read ?limit= and clamp it to 1..MAX_LIMIT."""
    limit = request.args.get("limit", str(DEFAULT_LIMIT))
    try:
        return max(1, min(MAX_LIMIT, int(limit)))
    except ValueError:
        return DEFAULT_LIMIT

def reset_state() -> None:
    """Drop every key and vertex (used by tests and reloads)."""
    store.clear()
    g.clear()
    STATE["csv_path"] = None
    STATE["store_loaded"] = False

def ingest_csv(csv_path: str) -> int:
    """Load "key,value" rows into the store; later rows overwrite earlier ones."""
    count = 0
    with open(csv_path, mode='r', newline='', encoding='utf-8') as csvfile:
        for row in csv.DictReader(csvfile):
            key = (row.get("key") or "").strip()
            if not key:
                continue
            store.put(key, row.get("value"))
            count += 1
    return count

def warm_start(csv_path: Optional[str] = None) -> None:
    """Ingest the startup CSV into the key/value store."""
    csv_path = (csv_path if csv_path is not None else DEFAULT_CSV_PATH or "").strip()
    STATE["csv_path"] = csv_path

    if not csv_path:
        logger.info("[warm_start] No CSV path provided.")
        return
    if not os.path.exists(csv_path):
        logger.warning("[warm_start] CSV not found: %s", csv_path)
        return

    logger.info("[warm_start] Ingesting CSV: %s", csv_path)
    t0 = time.time()
    count = ingest_csv(csv_path)
    t1 = time.time()
    STATE["store_loaded"] = True
    logger.info("[warm_start] Store loaded: %s rows, %s keys in %.2fs (height %d)",
                f"{count:,}", f"{len(store):,}", t1 - t0, store.height())


@app.errorhandler(GraphError)
def handle_graph_error(e: GraphError):
    return err(str(e), 400)


@app.get("/api/status")
def api_status():
    return ok({
        "csv_path": STATE["csv_path"],
        "store_loaded": STATE["store_loaded"],
        "keys_in_store": len(store),
        "tree_height": store.height(),
        "graph_vertices": len(g),
    })


# ------------------ Key/value store ------------------
@app.get("/api/kv")
def api_kv_list():
    limit = parse_limit()
    rows: List[Dict[str, Any]] = []
    for key, value in store.items():
        rows.append({"key": key, "value": value})
        if len(rows) >= limit:
            break
    return ok({"count_returned": len(rows), "total": len(store), "rows": rows})

@app.get("/api/kv/<key>")
def api_kv_get(key: str):
    if key not in store:
        return err("key not found", 404)
    return ok({"key": key, "value": store.at(key)})

@app.put("/api/kv/<key>")
def api_kv_put(key: str):
    data = request.get_json(silent=True) or {}
    if "value" not in data:
        return err("JSON body with a 'value' field required")

    existed = key in store
    old_value = store.put(key, data["value"])
    return ok({"key": key, "value": data["value"], "replaced": existed, "old_value": old_value})

@app.delete("/api/kv/<key>")
def api_kv_delete(key: str):
    if key not in store:
        return err("key not found", 404)
    old_value = store.remove(key)
    return ok({"deleted": True, "key": key, "old_value": old_value})


# ------------------ Graph ------------------
@app.post("/api/graph/vertex")
def api_graph_add_vertex():
    data = request.get_json(silent=True) or {}
    name = (data.get("name") or "").strip()
    if not name:
        return err("vertex 'name' required")
    g.add_vertex(name)
    return ok({"name": name, "vertices": len(g)})

@app.delete("/api/graph/vertex/<name>")
def api_graph_remove_vertex(name: str):
    g.remove_vertex(name)
    return ok({"deleted": True, "name": name})

def _edge_endpoints(data: Dict[str, Any]):
    source = (data.get("from") or "").strip()
    target = (data.get("to") or "").strip()
    return source, target

@app.post("/api/graph/edge")
def api_graph_add_edge():
    data = request.get_json(silent=True) or {}
    source, target = _edge_endpoints(data)
    if not source or not target or "weight" not in data:
        return err("'from', 'to' and 'weight' are required")
    try:
        weight = float(data["weight"])
    except (TypeError, ValueError):
        return err("weight must be a number")
    g.add_edge(source, target, weight)
    return ok({"from": source, "to": target, "weight": weight})

@app.delete("/api/graph/edge")
def api_graph_remove_edge():
    data = request.get_json(silent=True) or {}
    source, target = _edge_endpoints(data)
    if not source or not target:
        return err("'from' and 'to' are required")
    g.remove_edge(source, target)
    return ok({"deleted": True, "from": source, "to": target})

@app.get("/api/graph/cost")
def api_graph_cost():
    source = request.args.get("from")
    target = request.args.get("to")
    if source is None or target is None:
        return err("from and to are required: /api/graph/cost?from=...&to=...")
    return ok({"from": source, "to": target, "cost": g.cost(source, target)})

@app.get("/api/graph/neighbors/<name>")
def api_graph_neighbors(name: str):
    nbrs = g.neighbors(name)
    return ok({
        "vertex": name,
        "neighbors_count": len(nbrs),
        "neighbors": [{"neighbor": k, "weight": v} for k, v in nbrs.items()],
    })


if __name__ == "__main__":
    logging.basicConfig(**LOGGING_CONFIG)
    warm_start()
    app.run(host="127.0.0.1", port=5000, debug=True, use_reloader=False)
