"""Scenario playbook store adapter.

Keeps a local cache of saved scenarios consistent with the external playbook
service:

- ``save`` inserts into the cache only after the backend confirms and hands
  back an id (creation needs a server-assigned id).
- ``delete`` removes from the cache only after the backend confirms, so a
  failed delete never makes a row vanish and reappear.
- ``list`` never raises; failures resolve to an empty, unsuccessful listing
  and leave the cache untouched.

Listings can overlap with saves and deletes. A listing that started before
a local mutation is patched on arrival (rows deleted meanwhile are dropped,
rows saved meanwhile are kept), and a listing that finishes after a newer
one has already been applied is discarded.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from ssca.scenario.models import SavedScenario
from ssca.scenario.parameters import ScenarioParameters, ScenarioState
from ssca.scenario.signals import Signal
from ssca.utils import SSCAError, round_half_up

logger = logging.getLogger(__name__)


@dataclass
class PlaybookListing:
    success: bool
    scenarios: list[SavedScenario] = field(default_factory=list)
    error: str | None = None


def default_name(now: datetime) -> str:
    return f"Scenario {now.strftime('%Y-%m-%d %H:%M:%S')}"


def default_description(state: ScenarioState) -> str:
    return (
        f"Smart scenario: modal {round_half_up(state.modal_shift_current)}%, "
        f"renew {round_half_up(state.renewable_current)}%"
    )


class PlaybookStore:
    """Local cache of the playbook.

    ``service`` is anything with async ``list()``, ``create(payload) -> id``
    and ``delete(id)`` that raises ``SSCAError`` on failure, normally a
    ``PlaybookClient``.
    """

    def __init__(self, service: Any) -> None:
        self._service = service
        self._scenarios: list[SavedScenario] = []
        self._version = 0
        self._deleted: dict[str, int] = {}
        self._saved: dict[str, tuple[int, SavedScenario]] = {}
        self._list_seq = 0
        self._applied_list_seq = 0
        self._lists_in_flight = 0
        self.last_error: str | None = None
        self.changed = Signal("playbook_changed")

    @property
    def scenarios(self) -> list[SavedScenario]:
        return list(self._scenarios)

    def get(self, scenario_id: str) -> SavedScenario | None:
        scenario_id = str(scenario_id)
        for scenario in self._scenarios:
            if scenario.id == scenario_id:
                return scenario
        return None

    def _publish(self) -> None:
        self.changed.emit(self.scenarios)

    # ------------------------------------------------------------------
    # list
    # ------------------------------------------------------------------

    async def list(self) -> PlaybookListing:
        self._list_seq += 1
        seq = self._list_seq
        started_at = self._version
        self._lists_in_flight += 1
        try:
            fetched = await self._service.list()
        except SSCAError as exc:
            logger.warning("Loading playbook failed: %s", exc)
            self.last_error = str(exc)
            listing = PlaybookListing(success=False, error=str(exc))
        else:
            if seq < self._applied_list_seq:
                logger.debug("Discarding playbook listing %d; %d already applied", seq, self._applied_list_seq)
            else:
                self._applied_list_seq = seq
                self._scenarios = self._reconcile(fetched, started_at)
                self.last_error = None
                self._publish()
            listing = PlaybookListing(success=True, scenarios=self.scenarios)
        finally:
            self._lists_in_flight -= 1
            self._forget_settled_mutations()
        return listing

    refresh = list

    def _reconcile(self, fetched: list[SavedScenario], started_at: int) -> list[SavedScenario]:
        deleted_since = {sid for sid, version in self._deleted.items() if version > started_at}
        rows = [s for s in fetched if s.id not in deleted_since]
        present = {s.id for s in rows}
        for sid, (version, scenario) in self._saved.items():
            if version > started_at and sid not in present and sid not in deleted_since:
                rows.append(scenario)
        return rows

    def _forget_settled_mutations(self) -> None:
        if self._lists_in_flight == 0:
            self._deleted.clear()
            self._saved.clear()

    # ------------------------------------------------------------------
    # save / delete
    # ------------------------------------------------------------------

    def build_payload(
        self,
        scenario: ScenarioParameters | ScenarioState,
        name: str | None = None,
        description: str | None = None,
        now: datetime | None = None,
    ) -> dict[str, Any]:
        state = scenario.snapshot() if isinstance(scenario, ScenarioParameters) else scenario
        now = now or datetime.now(timezone.utc)
        return {
            "name": name or state.name or default_name(now),
            "description": description or state.description or default_description(state),
            "modal_shift_pct": state.modal_shift_current,
            "renewable_increase_pct": state.renewable_current,
            "created_at": now.isoformat(),
        }

    async def save(
        self,
        scenario: ScenarioParameters | ScenarioState,
        name: str | None = None,
        description: str | None = None,
        now: datetime | None = None,
    ) -> SavedScenario | None:
        """Persist the scenario's current lever values; cache only on confirmation."""
        payload = self.build_payload(scenario, name, description, now)
        try:
            scenario_id = await self._service.create(payload)
        except SSCAError as exc:
            logger.warning("Saving scenario '%s' failed: %s", payload["name"], exc)
            self.last_error = str(exc)
            return None

        saved = SavedScenario(id=scenario_id, **payload)
        self._version += 1
        if self._lists_in_flight:
            self._saved[saved.id] = (self._version, saved)
        self._scenarios = [s for s in self._scenarios if s.id != saved.id] + [saved]
        self.last_error = None
        logger.info("Saved scenario '%s' as %s", saved.name, saved.id)
        self._publish()
        return saved

    async def delete(self, scenario_id: str) -> bool:
        """Delete on the backend, then drop the row locally. False leaves the cache unchanged."""
        scenario_id = str(scenario_id)
        try:
            await self._service.delete(scenario_id)
        except SSCAError as exc:
            logger.warning("Deleting scenario %s failed: %s", scenario_id, exc)
            self.last_error = str(exc)
            return False

        self._version += 1
        if self._lists_in_flight:
            self._deleted[scenario_id] = self._version
            self._saved.pop(scenario_id, None)
        self._scenarios = [s for s in self._scenarios if s.id != scenario_id]
        self.last_error = None
        logger.info("Deleted scenario %s", scenario_id)
        self._publish()
        return True

    # ------------------------------------------------------------------
    # load
    # ------------------------------------------------------------------

    def load(self, scenario_id: str, parameters: ScenarioParameters) -> ScenarioState:
        """Overwrite the in-memory scenario with a cached playbook entry."""
        saved = self.get(scenario_id)
        if saved is None:
            raise KeyError(f"Scenario {scenario_id} is not in the playbook")
        return parameters.load(saved)
