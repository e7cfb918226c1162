from fastapi.testclient import TestClient

from service.app import app

client = TestClient(app)

T15 = list(range(1, 16))
P15 = [1, 1, 1, 0.8, 0.8, 1, 1, 1, 1, 1, 1.2, 1.2, 1.2, 1.2, 1.2]


def test_health():
    r = client.get("/healthz")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"


def test_segment_happy_path():
    r = client.post("/segment", json={"time_index": T15, "prices": P15, "min_leaf_size": 4})
    assert r.status_code == 200
    body = r.json()
    assert body["splits"] == [5, 10]
    assert body["partitions"][2] == [11, 12, 13, 14, 15]
    assert body["regular_prices"] == [1.0, 1.0, 1.2]
    assert "service_ms" in body["latency_ms"]


def test_segment_with_missing_prices_and_cap():
    prices = list(P15)
    prices[6] = None
    r = client.post(
        "/segment",
        json={"time_index": T15, "prices": prices, "min_leaf_size": 4, "max_splits": 1},
    )
    assert r.status_code == 200
    assert r.json()["splits"] == [10]


def test_segment_rejects_invalid_series():
    r = client.post("/segment", json={"time_index": [1, 2, 3], "prices": [1.0, 1.0], "min_leaf_size": 1})
    assert r.status_code == 422

    r = client.post("/segment", json={"time_index": [2, 1], "prices": [1.0, 1.0], "min_leaf_size": 1})
    assert r.status_code == 422

    r = client.post("/segment", json={"time_index": [1, 2], "prices": [1.0, 1.0], "min_leaf_size": 0})
    assert r.status_code == 422


def test_metrics_endpoint():
    client.get("/healthz")
    r = client.get("/metrics")
    assert r.status_code == 200
    assert "requests_total" in r.text
