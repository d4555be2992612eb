"""Pydantic v2 models for scenario estimates, optimizer results and playbook entries.

Importable without the backend or any running service.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ssca.scenario.constants import (
    BASELINE_LABEL,
    OPTIMIZATION_DEFAULTS,
    OPTIMIZED_LABEL,
)
from ssca.utils import round_half_up, safe_number


class Estimate(BaseModel):
    """Locally computed heuristic projection for the current lever values."""

    model_config = ConfigDict(frozen=True)

    baseline_emissions: float = Field(ge=0)
    emission_reduction_pct: float
    optimized_emissions: float = Field(ge=0)
    cost_change_pct: float
    baseline_source: Literal["forecast", "suppliers", "fallback"] = "fallback"

    @property
    def is_degraded(self) -> bool:
        return self.baseline_source == "fallback"


class ParetoSolution(BaseModel):
    cost: float = 0.0
    emissions: float = 0.0
    label: str = ""

    @classmethod
    def from_raw(cls, row: Any, index: int) -> "ParetoSolution":
        """Normalize one optimizer candidate row.

        Accepts ``cost``/``optimized_cost``, ``emissions``/``optimized_emissions``
        and ``name``/``label``; anything missing or non-numeric becomes 0 and
        an unnamed row is labelled ``sol-<n>``.
        """
        if isinstance(row, ParetoSolution):
            return row
        if not isinstance(row, dict):
            row = {}
        cost = safe_number(row.get("cost"), None)
        if not cost:
            cost = safe_number(row.get("optimized_cost"), 0.0)
        emissions = safe_number(row.get("emissions"), None)
        if not emissions:
            emissions = safe_number(row.get("optimized_emissions"), 0.0)
        label = row.get("name") or row.get("label") or f"sol-{index + 1}"
        return cls(cost=cost, emissions=emissions, label=str(label))


class OptimizationResult(BaseModel):
    """Authoritative figures from the remote optimizer."""

    baseline_emissions: float = OPTIMIZATION_DEFAULTS["baseline_emissions"]
    optimized_emissions: float = OPTIMIZATION_DEFAULTS["optimized_emissions"]
    emission_reduction_pct: float = OPTIMIZATION_DEFAULTS["emission_reduction_pct"]
    cost_change_pct: float = OPTIMIZATION_DEFAULTS["cost_change_pct"]
    baseline_cost: float = OPTIMIZATION_DEFAULTS["baseline_cost"]
    optimized_cost: float = OPTIMIZATION_DEFAULTS["optimized_cost"]
    pareto_solutions: list[ParetoSolution] = []
    supplier_changes: list[dict[str, Any]] = []
    defaulted_fields: list[str] = []

    @classmethod
    def from_payload(cls, results: Any) -> "OptimizationResult":
        """Build a result from a raw ``results`` object, defaulting field by field.

        A partial response is still useful for display, so missing or
        non-numeric figures are substituted individually and recorded in
        ``defaulted_fields`` instead of rejecting the whole payload.
        """
        if not isinstance(results, dict):
            results = {}

        values: dict[str, Any] = {}
        defaulted: list[str] = []
        for field, default in OPTIMIZATION_DEFAULTS.items():
            number = safe_number(results.get(field), None)
            if number is None:
                defaulted.append(field)
                number = default
            values[field] = number

        raw_solutions = results.get("pareto_solutions") or results.get("pareto_front") or []
        if not isinstance(raw_solutions, list):
            raw_solutions = []
        values["pareto_solutions"] = [
            ParetoSolution.from_raw(row, idx) for idx, row in enumerate(raw_solutions)
        ]

        changes = results.get("supplier_changes") or []
        values["supplier_changes"] = [c for c in changes if isinstance(c, dict)] if isinstance(changes, list) else []
        values["defaulted_fields"] = defaulted
        return cls(**values)

    @property
    def is_partial(self) -> bool:
        return bool(self.defaulted_fields)


class ParetoPoint(BaseModel):
    id: int
    cost: int
    emissions: int
    label: str
    cumulative_pct: int = 0
    kind: Literal["baseline", "optimized", "alternative"] = "alternative"

    @classmethod
    def kind_for(cls, label: str) -> str:
        if label == BASELINE_LABEL:
            return "baseline"
        if label == OPTIMIZED_LABEL:
            return "optimized"
        return "alternative"


class SavedScenario(BaseModel):
    """A named scenario persisted in the playbook store."""

    id: str
    name: str = ""
    description: str = ""
    modal_shift_pct: float = 0.0
    renewable_increase_pct: float = 0.0
    created_at: datetime | None = None

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v):
        return str(v)

    @field_validator("description", "name", mode="before")
    @classmethod
    def coerce_to_text(cls, v):
        if v is None:
            return ""
        return v if isinstance(v, str) else str(v)

    @field_validator("modal_shift_pct", "renewable_increase_pct", mode="before")
    @classmethod
    def coerce_pct(cls, v):
        return safe_number(v, 0.0)

    @field_validator("created_at", mode="before")
    @classmethod
    def tolerate_bad_timestamp(cls, v):
        if isinstance(v, datetime):
            return v
        if isinstance(v, str) and v:
            try:
                return datetime.fromisoformat(v.replace("Z", "+00:00"))
            except ValueError:
                return None
        return None

    def summary(self) -> str:
        if self.description:
            return self.description
        return f"{round_half_up(self.modal_shift_pct)}% modal, +{round_half_up(self.renewable_increase_pct)}% renew"


class Reconciliation(BaseModel):
    """Which figures are authoritative right now, and how far apart they are."""

    source: Literal["heuristic", "optimizer"]
    sequence: int
    estimate: Estimate
    result: OptimizationResult | None = None
    emission_gap_pct: float | None = None
    cost_gap_pct: float | None = None

    @classmethod
    def build(
        cls,
        estimate: Estimate,
        result: OptimizationResult | None,
        sequence: int,
    ) -> "Reconciliation":
        if result is None:
            return cls(source="heuristic", sequence=sequence, estimate=estimate)
        return cls(
            source="optimizer",
            sequence=sequence,
            estimate=estimate,
            result=result,
            emission_gap_pct=round(result.emission_reduction_pct - estimate.emission_reduction_pct, 2),
            cost_gap_pct=round(result.cost_change_pct - estimate.cost_change_pct, 2),
        )

    @property
    def emission_reduction_pct(self) -> float:
        if self.result is not None:
            return self.result.emission_reduction_pct
        return self.estimate.emission_reduction_pct

    @property
    def cost_change_pct(self) -> float:
        if self.result is not None:
            return self.result.cost_change_pct
        return self.estimate.cost_change_pct

    @property
    def baseline_emissions(self) -> float:
        if self.result is not None:
            return self.result.baseline_emissions
        return self.estimate.baseline_emissions

    @property
    def optimized_emissions(self) -> float:
        if self.result is not None:
            return self.result.optimized_emissions
        return self.estimate.optimized_emissions
