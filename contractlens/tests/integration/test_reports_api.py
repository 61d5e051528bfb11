from __future__ import annotations

from datetime import datetime, timezone

import pytest
from httpx import ASGITransport, AsyncClient

from contractlens.apps.api.deps import get_session_factory
from contractlens.apps.api.main import create_app
from contractlens.services.reports import assembler
from contractlens.tests.utils.records import add_analysis, add_contract, add_usage


MARCH = {"period": "custom", "start": "2024-03-01T00:00:00Z", "end": "2024-03-31T23:59:59Z"}
HEADERS = {"X-Tenant-Id": "user-1"}


def _utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def _client(session_factory) -> AsyncClient:
    app = create_app()
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


async def _seed(session_factory) -> None:
    async with session_factory() as session:
        contract = add_contract(session, user_id="user-1", created_at=_utc(2024, 3, 4), contract_type="NDA")
        add_analysis(
            session,
            contract,
            created_at=_utc(2024, 3, 5),
            estimated_cost=0.25,
            tokens_used=800,
            processing_time_ms=1500,
            results={"risks": [{"type": "financial"}, {"type": "financial"}, {"severity": "high"}]},
        )
        add_usage(session, user_id="user-1", action="upload", created_at=_utc(2024, 3, 4, 10))
        add_usage(session, user_id="user-1", action="analysis", created_at=_utc(2024, 3, 5, 11))
        await session.commit()


@pytest.mark.asyncio
async def test_report_aggregate_returns_envelope(session_factory) -> None:
    await _seed(session_factory)
    async with _client(session_factory) as client:
        response = await client.get("/v1/reports/aggregate", params=MARCH, headers=HEADERS)

    assert response.status_code == 200
    body = response.json()
    assert body["meta"]["api_version"] == "v1"
    assert body["meta"]["request_id"]
    data = body["data"]
    assert data["window"]["period"] == "custom"
    assert data["tenant"] == {"kind": "user", "id": "user-1"}
    assert len(data["contracts"]) == 1
    assert data["analyses"][0]["risk_count"] == 3
    assert data["cost_summary"]["count"] == 1
    assert data["cost_summary"]["total_cost"] == pytest.approx(0.25)
    assert data["risk_histogram"] == [
        {"category": "financial", "count": 2},
        {"category": "Other", "count": 1},
    ]
    assert data["usage_series"] == {"2024-03-04": {"upload": 1}, "2024-03-05": {"analysis": 1}}
    assert len(data["usage_points"]) == 31
    assert data["overview"]["success_rate"] == 100.0
    assert data["overview"]["usage_by_action"] == {"analysis": 1, "upload": 1}
    assert data["overview"]["total_contracts"] == 1
    assert data["risk_severity"][1] == {"severity": "high", "count": 1}
    assert [item["high_risk_count"] for item in data["high_risk_items"]] == [1]
    assert data["warnings"] == []
    assert all(section["status"] == "ok" for section in data["sections"].values())


@pytest.mark.asyncio
async def test_report_aggregate_requires_tenant(session_factory) -> None:
    async with _client(session_factory) as client:
        response = await client.get("/v1/reports/aggregate", params=MARCH)
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "AUTH_UNAUTHORIZED"


@pytest.mark.asyncio
async def test_report_aggregate_rejects_unknown_tenant_kind(session_factory) -> None:
    async with _client(session_factory) as client:
        response = await client.get(
            "/v1/reports/aggregate",
            params=MARCH,
            headers={**HEADERS, "X-Tenant-Kind": "team"},
        )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "TENANT_KIND_INVALID"


@pytest.mark.asyncio
async def test_report_aggregate_rejects_inverted_window(session_factory) -> None:
    params = {"period": "custom", "start": "2024-03-31T00:00:00Z", "end": "2024-03-01T00:00:00Z"}
    async with _client(session_factory) as client:
        response = await client.get("/v1/reports/aggregate", params=params, headers=HEADERS)
    assert response.status_code == 422
    assert response.json()["error"]["code"] == "REPORT_WINDOW_INVALID"


@pytest.mark.asyncio
async def test_report_aggregate_rejects_unknown_period(session_factory) -> None:
    async with _client(session_factory) as client:
        response = await client.get("/v1/reports/aggregate", params={"period": "decade"}, headers=HEADERS)
    assert response.status_code == 422
    assert response.json()["error"]["code"] == "REPORT_WINDOW_INVALID"


@pytest.mark.asyncio
async def test_report_aggregate_rejects_overlong_window(session_factory) -> None:
    params = {"period": "custom", "start": "1900-01-01T00:00:00Z", "end": "2100-01-01T00:00:00Z"}
    async with _client(session_factory) as client:
        response = await client.get("/v1/reports/aggregate", params=params, headers=HEADERS)
    assert response.status_code == 422
    assert response.json()["error"]["code"] == "REPORT_WINDOW_INVALID"


@pytest.mark.asyncio
async def test_required_source_failure_maps_to_503(session_factory, monkeypatch) -> None:
    async def _broken(_session, _tenant, _window):
        raise ConnectionError("analysis store unreachable")

    monkeypatch.setattr(assembler, "fetch_analyses", _broken)
    async with _client(session_factory) as client:
        response = await client.get("/v1/reports/aggregate", params=MARCH, headers=HEADERS)

    assert response.status_code == 503
    error = response.json()["error"]
    assert error["code"] == "REPORT_SOURCE_UNAVAILABLE"
    assert error["details"] == {"source": "analyses", "retryable": True}


@pytest.mark.asyncio
async def test_optional_source_failure_returns_degraded_report(session_factory, monkeypatch) -> None:
    async def _broken(_session, _tenant, _window):
        raise ConnectionError("usage store unreachable")

    await _seed(session_factory)
    monkeypatch.setattr(assembler, "fetch_usage_tuples", _broken)
    async with _client(session_factory) as client:
        response = await client.get("/v1/reports/aggregate", params=MARCH, headers=HEADERS)

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["sections"]["usage"] == {"status": "unavailable", "error": "ConnectionError"}
    assert data["usage_series"] == {}
    assert data["warnings"] == ["usage data unavailable"]
    assert response.json()["meta"]["warnings"] == ["usage data unavailable"]
    assert len(data["contracts"]) == 1


@pytest.mark.asyncio
async def test_report_metrics_reflect_assembled_reports(session_factory) -> None:
    async with _client(session_factory) as client:
        await client.get("/v1/reports/aggregate", params=MARCH, headers=HEADERS)
        response = await client.get("/v1/ops/report-metrics")
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["counters"]["reports_assembled_total"] == 1
