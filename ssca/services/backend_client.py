"""Thin async wrappers for the SSCA backend endpoints.

Each client is fully mockable: pass an ``httpx.AsyncClient`` (for example
one built on ``httpx.MockTransport``) to avoid real HTTP calls. Transport
failures and HTTP error statuses surface as ``BackendUnavailableError``; a
well-formed answer carrying ``success: false`` surfaces as
``BackendRejectedError``.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import httpx
from pydantic import ValidationError

from ssca.scenario.models import OptimizationResult, SavedScenario
from ssca.utils import (
    BackendRejectedError,
    BackendUnavailableError,
    round_half_up,
    safe_number,
)

logger = logging.getLogger(__name__)

_DEFAULT_API = "http://localhost:8000"
_DEFAULT_TIMEOUT = 30.0
_DEFAULT_MAX_RETRIES = 1
_DEFAULT_RETRY_DELAY = 0.5


class _BaseClient:
    """Shared HTTP plumbing for backend clients."""

    def __init__(
        self,
        base_url: str = _DEFAULT_API,
        timeout: float = _DEFAULT_TIMEOUT,
        max_retries: int = _DEFAULT_MAX_RETRIES,
        retry_delay: float = _DEFAULT_RETRY_DELAY,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay
        self._client = client
        self._owns_client = client is None

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def _request(self, method: str, path: str, payload: dict | None = None) -> dict:
        """Issue a request with retry logic and return the decoded JSON object."""
        url = f"{self.base_url}/{path.lstrip('/')}"
        last_exc: Exception | None = None

        for attempt in range(self.max_retries):
            try:
                resp = await self._http().request(method, url, json=payload, timeout=self.timeout)
                resp.raise_for_status()
                if resp.status_code == 204 or not resp.content:
                    return {}
                try:
                    body = resp.json()
                except (json.JSONDecodeError, ValueError):
                    logger.warning("Non-JSON response from %s (status %d)", url, resp.status_code)
                    return {}
                return body if isinstance(body, dict) else {"data": body}
            except (httpx.HTTPStatusError, httpx.RequestError) as exc:
                last_exc = exc
                logger.warning(
                    "%s %s failed (attempt %d/%d): %s",
                    method, url, attempt + 1, self.max_retries, exc,
                )
                if attempt < self.max_retries - 1:
                    await asyncio.sleep(self.retry_delay * (attempt + 1))

        raise BackendUnavailableError(
            f"Failed to reach {url} after {self.max_retries} attempts"
        ) from last_exc


class OptimizerClient(_BaseClient):
    """Client for the remote multi-objective optimizer."""

    async def optimize(self, modal_shift_pct: float, renewable_increase_pct: float) -> OptimizationResult:
        body = await self._request(
            "POST",
            "/api/v1/optimize/supply-chain",
            {"scenario": {
                "modal_shift_pct": modal_shift_pct,
                "renewable_increase_pct": renewable_increase_pct,
            }},
        )
        if not body.get("success"):
            raise BackendRejectedError(body.get("error") or "Optimizer reported failure")
        result = OptimizationResult.from_payload(body.get("results"))
        if result.is_partial:
            logger.info("Optimizer response missing %s; defaults substituted", ", ".join(result.defaulted_fields))
        return result


class PlaybookClient(_BaseClient):
    """Client for the saved-scenario playbook endpoints."""

    async def list(self) -> list[SavedScenario]:
        body = await self._request("GET", "/api/v1/scenarios")
        if not body.get("success"):
            raise BackendRejectedError(body.get("error") or "Playbook listing failed")
        rows = body.get("scenarios") or []
        if isinstance(rows, dict):
            rows = list(rows.values())
        scenarios = []
        for row in rows:
            if not isinstance(row, dict) or row.get("id") is None:
                logger.warning("Skipping playbook row without id: %r", row)
                continue
            try:
                scenarios.append(SavedScenario.model_validate(row))
            except ValidationError as exc:
                logger.warning("Skipping malformed playbook row %r: %s", row.get("id"), exc)
        return scenarios

    async def create(self, payload: dict[str, Any]) -> str:
        """Persist a scenario and return the id assigned by the backend."""
        body = await self._request("POST", "/api/v1/scenarios", payload)
        if not body.get("success"):
            raise BackendRejectedError(body.get("error") or "Playbook save failed")
        scenario_id = body.get("id") or body.get("scenario_id")
        if scenario_id is None and isinstance(body.get("scenario"), dict):
            scenario_id = body["scenario"].get("id")
        if scenario_id is None:
            raise BackendRejectedError("Playbook save confirmed without an id")
        return str(scenario_id)

    async def delete(self, scenario_id: str) -> None:
        body = await self._request("DELETE", f"/api/v1/scenarios/{scenario_id}")
        if not body.get("success"):
            raise BackendRejectedError(body.get("error") or f"Playbook delete of {scenario_id} failed")


class DataSourceClient(_BaseClient):
    """Read-only forecast and supplier emission series."""

    async def get_forecast(self, facility_id: str = "F001", horizon_days: int = 30) -> list[float]:
        body = await self._request(
            "POST",
            "/api/v1/forecast/emissions",
            {"facility_id": facility_id, "horizon_days": horizon_days},
        )
        if not body.get("success"):
            return []
        forecast = body.get("forecast")
        # Both a plain series and a {date: value} mapping are in use
        if isinstance(forecast, dict):
            forecast = list(forecast.values())
        if not isinstance(forecast, list):
            return []
        return [float(round_half_up(safe_number(v, 0.0))) for v in forecast]

    async def get_supplier_emissions(self) -> list[float]:
        body = await self._request("GET", "/api/v1/suppliers")
        if not body.get("success"):
            return []
        suppliers = body.get("suppliers") or []
        if isinstance(suppliers, dict):
            suppliers = list(suppliers.values())
        emissions = []
        for supplier in suppliers:
            if not isinstance(supplier, dict):
                continue
            value = supplier.get("emissions") or supplier.get("total_emissions_kg")
            emissions.append(safe_number(value, 0.0))
        return emissions


class HealthClient(_BaseClient):
    async def get_health(self) -> dict:
        try:
            return await self._request("GET", "/health")
        except BackendUnavailableError:
            return {"status": "offline"}
