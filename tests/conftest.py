"""Shared test fixtures for the SSCA test suite."""

import asyncio
import os
from typing import Callable

import pytest

from ssca.scenario.models import OptimizationResult, SavedScenario
from ssca.utils import BackendRejectedError


# Ensure test environment variables are set before any config import
os.environ.setdefault("SSCA_API_BASE_URL", "http://backend.test")
os.environ.setdefault("SSCA_LOG_LEVEL", "WARNING")


# ---------------------------------------------------------------------------
# Synthetic time
# ---------------------------------------------------------------------------

class ManualTimer:
    def __init__(self, period_s: float, callback: Callable[[], None]) -> None:
        self.period_s = period_s
        self.callback = callback
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        self._active = False


class ManualTickSource:
    """Tick source that only fires when the test says so."""

    def __init__(self) -> None:
        self.timers: list[ManualTimer] = []

    def start(self, period_s, callback):
        timer = ManualTimer(period_s, callback)
        self.timers.append(timer)
        return timer

    @property
    def active_timers(self) -> list[ManualTimer]:
        return [t for t in self.timers if t.active]

    def fire(self, times: int = 1) -> None:
        for _ in range(times):
            for timer in self.active_timers:
                timer.callback()


@pytest.fixture
def manual_ticks():
    return ManualTickSource()


# ---------------------------------------------------------------------------
# Fake collaborators
# ---------------------------------------------------------------------------

class FakeOptimizer:
    """Optimizer whose responses are resolved explicitly by the test, in any order."""

    def __init__(self) -> None:
        self.calls: list[tuple[float, float, asyncio.Future]] = []

    async def optimize(self, modal_shift_pct, renewable_increase_pct):
        future = asyncio.get_running_loop().create_future()
        self.calls.append((modal_shift_pct, renewable_increase_pct, future))
        return await future

    def resolve(self, index: int, result: OptimizationResult) -> None:
        self.calls[index][2].set_result(result)

    def fail(self, index: int, exc: Exception) -> None:
        self.calls[index][2].set_exception(exc)


@pytest.fixture
def fake_optimizer():
    return FakeOptimizer()


class FakePlaybookService:
    """In-memory playbook backend with switchable failures and gates."""

    def __init__(self, rows=None) -> None:
        self.rows: list[SavedScenario] = list(rows or [])
        self.fail_list = False
        self.reject_create = False
        self.reject_delete = False
        self.list_gate: asyncio.Future | None = None
        self.create_gate: asyncio.Future | None = None
        self.created_payloads: list[dict] = []
        self._next_id = 100

    async def list(self):
        snapshot = list(self.rows)
        if self.list_gate is not None:
            gate, self.list_gate = self.list_gate, None
            await gate
        if self.fail_list:
            raise BackendRejectedError("listing unavailable")
        return snapshot

    async def create(self, payload):
        if self.create_gate is not None:
            gate, self.create_gate = self.create_gate, None
            await gate
        if self.reject_create:
            raise BackendRejectedError("create rejected")
        self._next_id += 1
        self.created_payloads.append(payload)
        self.rows.append(SavedScenario(id=self._next_id, **payload))
        return str(self._next_id)

    async def delete(self, scenario_id):
        if self.reject_delete:
            raise BackendRejectedError("delete rejected")
        self.rows = [r for r in self.rows if r.id != str(scenario_id)]


@pytest.fixture
def saved_rows():
    return [
        SavedScenario(id="1", name="Rail pilot", modal_shift_pct=20, renewable_increase_pct=10),
        SavedScenario(id="2", name="Solar rollout", modal_shift_pct=5, renewable_increase_pct=60,
                      description="PPA for all plants"),
    ]


@pytest.fixture
def playbook_service(saved_rows):
    return FakePlaybookService(saved_rows)


@pytest.fixture
def sample_results_payload():
    """A complete optimizer ``results`` object."""
    return {
        "baseline_emissions": 120000,
        "optimized_emissions": 84000,
        "emission_reduction_pct": 30,
        "cost_change_pct": 2.5,
        "baseline_cost": 600000,
        "optimized_cost": 615000,
        "supplier_changes": [
            {"supplier": "S-001", "action": "switch_to_rail"},
        ],
    }


async def _settle(rounds: int = 5) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def settle():
    """Awaitable that lets scheduled tasks run until they block again."""
    return _settle
