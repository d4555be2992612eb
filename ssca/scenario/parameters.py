"""Observable scenario parameter model.

Holds the two levers (modal shift and renewable increase), each with an
operator-set target and an animated current value. Current values are always
``round(target * fraction)`` for the last sweep fraction applied; both levers
change together and subscribers are notified once per mutation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable

from ssca.scenario.constants import (
    DEFAULT_MODAL_SHIFT_PCT,
    DEFAULT_RENEWABLE_PCT,
    LEVER_MAX,
    LEVER_MIN,
    SCENARIO_PRESETS,
)
from ssca.scenario.models import SavedScenario
from ssca.scenario.signals import Signal
from ssca.utils import clamp, round_half_up, safe_number

logger = logging.getLogger(__name__)


class Lever(str, Enum):
    MODAL_SHIFT = "modal_shift"
    RENEWABLE = "renewable"


@dataclass(frozen=True)
class ScenarioState:
    """Immutable snapshot of the scenario at one point in time."""

    modal_shift_current: float = DEFAULT_MODAL_SHIFT_PCT
    modal_shift_target: float = DEFAULT_MODAL_SHIFT_PCT
    renewable_current: float = DEFAULT_RENEWABLE_PCT
    renewable_target: float = DEFAULT_RENEWABLE_PCT
    name: str = ""
    description: str = ""
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def target(self, lever: Lever) -> float:
        return self.modal_shift_target if lever is Lever.MODAL_SHIFT else self.renewable_target

    def current(self, lever: Lever) -> float:
        return self.modal_shift_current if lever is Lever.MODAL_SHIFT else self.renewable_current

    def as_request(self) -> dict[str, float]:
        """Optimizer request body for the current lever values."""
        return {
            "modal_shift_pct": self.modal_shift_current,
            "renewable_increase_pct": self.renewable_current,
        }


def _coerce_pct(value: Any, previous: float) -> float:
    number = safe_number(value, None)
    if number is None:
        logger.debug("Ignoring non-numeric lever value %r; keeping %s", value, previous)
        return previous
    return clamp(number, LEVER_MIN, LEVER_MAX)


class ScenarioParameters:
    """Pure state container for the scenario levers with change notifications."""

    def __init__(
        self,
        modal_shift_pct: float = DEFAULT_MODAL_SHIFT_PCT,
        renewable_increase_pct: float = DEFAULT_RENEWABLE_PCT,
        name: str = "",
        description: str = "",
    ) -> None:
        modal = _coerce_pct(modal_shift_pct, DEFAULT_MODAL_SHIFT_PCT)
        renew = _coerce_pct(renewable_increase_pct, DEFAULT_RENEWABLE_PCT)
        self._state = ScenarioState(
            modal_shift_current=modal,
            modal_shift_target=modal,
            renewable_current=renew,
            renewable_target=renew,
            name=name,
            description=description,
        )
        self.changed = Signal("scenario_changed")

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    def snapshot(self) -> ScenarioState:
        return self._state

    def subscribe(self, callback: Callable[[ScenarioState], Any]) -> Callable[[], None]:
        return self.changed.subscribe(callback)

    def unsubscribe(self, callback: Callable[[ScenarioState], Any]) -> None:
        self.changed.unsubscribe(callback)

    def _commit(self, state: ScenarioState) -> ScenarioState:
        # Single assignment: observers never see one lever ahead of the other
        if state == self._state:
            return self._state
        self._state = state
        self.changed.emit(state)
        return state

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def set_target(self, lever: Lever | str, value: Any) -> float:
        """Set a lever's target, clamped to [0, 100]. Returns the stored value."""
        lever = Lever(lever)
        stored = _coerce_pct(value, self._state.target(lever))
        if lever is Lever.MODAL_SHIFT:
            self._commit(replace(self._state, modal_shift_target=stored))
        else:
            self._commit(replace(self._state, renewable_target=stored))
        return stored

    def tick(self, fraction: Any) -> ScenarioState:
        """Interpolate both current values to ``round(target * fraction)``."""
        frac = safe_number(fraction, None)
        if frac is None:
            return self._state
        frac = clamp(frac, 0.0, 1.0)
        state = self._state
        return self._commit(replace(
            state,
            modal_shift_current=float(round_half_up(state.modal_shift_target * frac)),
            renewable_current=float(round_half_up(state.renewable_target * frac)),
        ))

    def set_levels(self, modal_shift_pct: Any, renewable_increase_pct: Any) -> ScenarioState:
        """Set target and current of both levers in one step."""
        state = self._state
        modal = _coerce_pct(modal_shift_pct, state.modal_shift_target)
        renew = _coerce_pct(renewable_increase_pct, state.renewable_target)
        return self._commit(replace(
            state,
            modal_shift_current=modal,
            modal_shift_target=modal,
            renewable_current=renew,
            renewable_target=renew,
        ))

    def apply_preset(self, name: str) -> ScenarioState:
        try:
            preset = SCENARIO_PRESETS[name]
        except KeyError:
            raise ValueError(
                f"Unknown preset '{name}'. Choose from: {', '.join(SCENARIO_PRESETS)}"
            ) from None
        return self.set_levels(preset["modal_shift_pct"], preset["renewable_increase_pct"])

    def reset(self) -> ScenarioState:
        return self.set_levels(0, 0)

    def rename(self, name: str | None = None, description: str | None = None) -> ScenarioState:
        state = self._state
        return self._commit(replace(
            state,
            name=state.name if name is None else name,
            description=state.description if description is None else description,
        ))

    def load(self, saved: SavedScenario) -> ScenarioState:
        """Replace the whole scenario with a saved playbook entry."""
        modal = _coerce_pct(saved.modal_shift_pct, 0.0)
        renew = _coerce_pct(saved.renewable_increase_pct, 0.0)
        return self._commit(ScenarioState(
            modal_shift_current=modal,
            modal_shift_target=modal,
            renewable_current=renew,
            renewable_target=renew,
            name=saved.name,
            description=saved.description,
            created_at=saved.created_at or datetime.now(timezone.utc),
        ))
