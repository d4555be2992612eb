"""Unit tests for the async backend clients in ssca/services/backend_client.py.

Covers:
  - HTTP 204 / empty body / non-JSON responses
  - Retry and error mapping (BackendUnavailableError vs BackendRejectedError)
  - Optimizer request shape and partial-result defaulting
  - Playbook list/create/delete, forecast and supplier parsing, health check

All tests use httpx.MockTransport - no real HTTP calls are made.
"""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest
from pydantic import field_validator

from ssca.scenario.models import SavedScenario
from ssca.services import backend_client
from ssca.services.backend_client import (
    DataSourceClient,
    HealthClient,
    OptimizerClient,
    PlaybookClient,
    _BaseClient,
)
from ssca.utils import BackendRejectedError, BackendUnavailableError


BASE = "http://backend.test"


def _mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _run(client_cls, handler, call, **kwargs):
    """Build a client on a mock transport, run ``call(client)`` and close it."""

    async def go():
        http = _mock_client(handler)
        try:
            client = client_cls(base_url=BASE, client=http, retry_delay=0, **kwargs)
            return await call(client)
        finally:
            await http.aclose()

    return asyncio.run(go())


# ---------------------------------------------------------------------------
# 1. _BaseClient._request() edge cases
# ---------------------------------------------------------------------------
class TestBaseClientRequest:
    def test_204_returns_empty_dict(self) -> None:
        result = _run(_BaseClient, lambda req: httpx.Response(204), lambda c: c._request("GET", "/x"))
        assert result == {}

    def test_empty_body_returns_empty_dict(self) -> None:
        result = _run(_BaseClient, lambda req: httpx.Response(200, content=b""), lambda c: c._request("GET", "/x"))
        assert result == {}

    def test_html_body_returns_empty_dict(self) -> None:
        handler = lambda req: httpx.Response(200, content=b"<html>maintenance</html>")
        assert _run(_BaseClient, handler, lambda c: c._request("GET", "/x")) == {}

    def test_list_body_is_wrapped(self) -> None:
        handler = lambda req: httpx.Response(200, json=[1, 2])
        assert _run(_BaseClient, handler, lambda c: c._request("GET", "/x")) == {"data": [1, 2]}

    def test_http_error_maps_to_unavailable(self) -> None:
        handler = lambda req: httpx.Response(503, json={"detail": "down"})
        with pytest.raises(BackendUnavailableError) as exc_info:
            _run(_BaseClient, handler, lambda c: c._request("GET", "/x"))
        assert isinstance(exc_info.value.__cause__, httpx.HTTPStatusError)
        assert isinstance(exc_info.value, ConnectionError)

    def test_transport_error_maps_to_unavailable(self) -> None:
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(BackendUnavailableError):
            _run(_BaseClient, handler, lambda c: c._request("GET", "/x"))

    def test_retries_then_succeeds(self) -> None:
        attempts = []

        def handler(request):
            attempts.append(request)
            if len(attempts) < 3:
                return httpx.Response(502)
            return httpx.Response(200, json={"ok": True})

        result = _run(_BaseClient, handler, lambda c: c._request("GET", "/x"), max_retries=3)
        assert result == {"ok": True}
        assert len(attempts) == 3

    def test_base_url_trailing_slash(self) -> None:
        seen = []

        def handler(request):
            seen.append(str(request.url))
            return httpx.Response(200, json={})

        async def go():
            http = _mock_client(handler)
            client = _BaseClient(base_url=BASE + "/", client=http)
            await client._request("GET", "/health")
            await http.aclose()

        asyncio.run(go())
        assert seen == [BASE + "/health"]


# ---------------------------------------------------------------------------
# 2. OptimizerClient
# ---------------------------------------------------------------------------
class TestOptimizerClient:
    def test_request_shape_and_result(self, sample_results_payload) -> None:
        captured = {}

        def handler(request):
            captured["method"] = request.method
            captured["path"] = request.url.path
            captured["body"] = json.loads(request.content)
            return httpx.Response(200, json={"success": True, "results": sample_results_payload})

        result = _run(OptimizerClient, handler, lambda c: c.optimize(30, 50))
        assert captured == {
            "method": "POST",
            "path": "/api/v1/optimize/supply-chain",
            "body": {"scenario": {"modal_shift_pct": 30, "renewable_increase_pct": 50}},
        }
        assert result.emission_reduction_pct == 30
        assert not result.is_partial

    def test_partial_results_defaulted(self) -> None:
        handler = lambda req: httpx.Response(200, json={"success": True, "results": {"cost_change_pct": 1.5}})
        result = _run(OptimizerClient, handler, lambda c: c.optimize(10, 10))
        assert result.cost_change_pct == 1.5
        assert result.baseline_emissions == 100000
        assert "cost_change_pct" not in result.defaulted_fields
        assert result.is_partial

    def test_success_false_is_rejected(self) -> None:
        handler = lambda req: httpx.Response(200, json={"success": False, "error": "infeasible"})
        with pytest.raises(BackendRejectedError, match="infeasible"):
            _run(OptimizerClient, handler, lambda c: c.optimize(10, 10))

    def test_missing_success_flag_is_rejected(self) -> None:
        handler = lambda req: httpx.Response(200, json={"results": {}})
        with pytest.raises(BackendRejectedError):
            _run(OptimizerClient, handler, lambda c: c.optimize(10, 10))


# ---------------------------------------------------------------------------
# 3. PlaybookClient
# ---------------------------------------------------------------------------
class TestPlaybookClient:
    def test_list_parses_rows_and_skips_missing_ids(self) -> None:
        body = {
            "success": True,
            "scenarios": [
                {"id": 1, "name": "Rail pilot", "modal_shift_pct": 20, "renewable_increase_pct": 10},
                {"name": "orphan"},
                {"id": "b7", "name": None, "description": None, "created_at": "bad-date?"},
            ],
        }
        rows = _run(PlaybookClient, lambda req: httpx.Response(200, json=body), lambda c: c.list())
        assert [r.id for r in rows] == ["1", "b7"]
        assert rows[1].name == ""

    def test_list_tolerates_loosely_typed_rows(self) -> None:
        body = {
            "success": True,
            "scenarios": [
                {"id": 7},
                {"id": 8, "name": 123},
                {"id": 9, "name": "x", "description": 5},
            ],
        }
        rows = _run(PlaybookClient, lambda req: httpx.Response(200, json=body), lambda c: c.list())
        assert [(r.id, r.name, r.description) for r in rows] == [
            ("7", "", ""),
            ("8", "123", ""),
            ("9", "x", "5"),
        ]

    def test_list_skips_rows_that_fail_validation(self, monkeypatch) -> None:
        class _StrictScenario(SavedScenario):
            @field_validator("name")
            @classmethod
            def reject_placeholder(cls, v):
                if v == "bad":
                    raise ValueError("placeholder name")
                return v

        monkeypatch.setattr(backend_client, "SavedScenario", _StrictScenario)
        body = {"success": True, "scenarios": [{"id": 1, "name": "ok"}, {"id": 2, "name": "bad"}]}
        rows = _run(PlaybookClient, lambda req: httpx.Response(200, json=body), lambda c: c.list())
        assert [r.id for r in rows] == ["1"]

    def test_list_requires_success(self) -> None:
        handler = lambda req: httpx.Response(200, json={"scenarios": []})
        with pytest.raises(BackendRejectedError):
            _run(PlaybookClient, handler, lambda c: c.list())

    @pytest.mark.parametrize("body", [
        {"success": True, "id": 55},
        {"success": True, "scenario_id": "55"},
        {"success": True, "scenario": {"id": 55}},
    ])
    def test_create_reads_assigned_id(self, body) -> None:
        seen = []

        def handler(request):
            seen.append((request.method, request.url.path, json.loads(request.content)))
            return httpx.Response(201, json=body)

        scenario_id = _run(PlaybookClient, handler, lambda c: c.create({"name": "x"}))
        assert scenario_id == "55"
        assert seen == [("POST", "/api/v1/scenarios", {"name": "x"})]

    def test_create_without_id_is_rejected(self) -> None:
        handler = lambda req: httpx.Response(200, json={"success": True})
        with pytest.raises(BackendRejectedError, match="without an id"):
            _run(PlaybookClient, handler, lambda c: c.create({"name": "x"}))

    def test_delete(self) -> None:
        seen = []

        def handler(request):
            seen.append((request.method, request.url.path))
            return httpx.Response(200, json={"success": True})

        _run(PlaybookClient, handler, lambda c: c.delete("42"))
        assert seen == [("DELETE", "/api/v1/scenarios/42")]

    def test_delete_rejected(self) -> None:
        handler = lambda req: httpx.Response(200, json={"success": False})
        with pytest.raises(BackendRejectedError):
            _run(PlaybookClient, handler, lambda c: c.delete("42"))


# ---------------------------------------------------------------------------
# 4. DataSourceClient and HealthClient
# ---------------------------------------------------------------------------
class TestDataSourceClient:
    def test_forecast_list(self) -> None:
        handler = lambda req: httpx.Response(200, json={"success": True, "forecast": [100.5, "200", None]})
        assert _run(DataSourceClient, handler, lambda c: c.get_forecast()) == [101, 200, 0]

    def test_forecast_mapping(self) -> None:
        body = {"success": True, "forecast": {"2025-01-01": 10, "2025-01-02": 20}}
        assert _run(DataSourceClient, lambda req: httpx.Response(200, json=body), lambda c: c.get_forecast()) == [10, 20]

    def test_forecast_request_body(self) -> None:
        seen = []

        def handler(request):
            seen.append(json.loads(request.content))
            return httpx.Response(200, json={"success": False})

        assert _run(DataSourceClient, handler, lambda c: c.get_forecast("F009", 7)) == []
        assert seen == [{"facility_id": "F009", "horizon_days": 7}]

    def test_supplier_emissions(self) -> None:
        body = {"success": True, "suppliers": [
            {"emissions": 1200},
            {"total_emissions_kg": "800"},
            {"name": "no data"},
            "junk",
        ]}
        result = _run(DataSourceClient, lambda req: httpx.Response(200, json=body), lambda c: c.get_supplier_emissions())
        assert result == [1200, 800, 0]


class TestHealthClient:
    def test_healthy(self) -> None:
        handler = lambda req: httpx.Response(200, json={"status": "healthy"})
        assert _run(HealthClient, handler, lambda c: c.get_health()) == {"status": "healthy"}

    def test_offline(self) -> None:
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        assert _run(HealthClient, handler, lambda c: c.get_health()) == {"status": "offline"}
