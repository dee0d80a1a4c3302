from __future__ import annotations

from fastapi.testclient import TestClient

from space_quota.models import QuotaObserverConfig
from space_quota.service_http import create_app


def _reports() -> list[dict]:
    return [
        {"region": {"table": "t1", "start_key": "00", "end_key": "01"}, "size": 600},
        {"region": {"table": "t1", "start_key": "01", "end_key": "02"}, "size": 600},
        {"region": {"table": "ns:t2", "start_key": "", "end_key": ""}, "size": 10},
    ]


def test_health_and_ingest_endpoint() -> None:
    client = TestClient(create_app(QuotaObserverConfig()))

    resp = client.get("/healthz")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}

    ingest_resp = client.post("/reports", json={"reports": _reports()})
    assert ingest_resp.status_code == 202
    assert ingest_resp.json() == {"ingested": 3}

    usage = {row["table"]: row for row in client.get("/usage").json()}
    assert usage["t1"] == {"table": "t1", "regions": 2, "size": 1200}
    assert usage["ns:t2"]["size"] == 10


def test_negative_size_is_rejected() -> None:
    client = TestClient(create_app(QuotaObserverConfig()))
    bad = {"region": {"table": "t1"}, "size": -1}

    assert client.post("/reports", json={"reports": [bad]}).status_code == 422


def test_evaluate_endpoint_reports_failures_separately() -> None:
    client = TestClient(create_app(QuotaObserverConfig()))
    client.post("/reports", json={"reports": _reports()})

    assert (
        client.put("/quotas/t1", json={"soft_limit": 1024, "violation_policy": 3}).status_code
        == 204
    )
    assert client.put("/quotas/ns:t2", json={"soft_limit": 1024}).status_code == 204

    body = client.post("/evaluate").json()
    assert body["decisions"]["t1"] == {"in_violation": True, "policy": 3}
    assert "ns:t2" in body["failures"]
    assert body["skipped"] == []

    client.delete("/quotas/ns:t2")
    body = client.post("/evaluate").json()
    assert body["failures"] == {}


def test_app_installs_no_extra_middleware() -> None:
    app = create_app(QuotaObserverConfig())

    assert app.user_middleware == []
