"""Heuristic impact estimator.

Gives an instant, deterministic emissions/cost projection for the current
lever values so the operator has feedback while the remote optimizer works.

The reduction model is deliberately additive: each lever contributes an
independent linear elasticity and there is no interaction term. At high
lever values the sum can exceed what the two effects would achieve
together (both levers at 100% gives a 73% reduction); this is preserved as
is. Optimized emissions are floored at zero, the reduction percentage is
not clamped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable

import numpy as np

from ssca.scenario.constants import (
    COST_ELASTICITY,
    EMISSION_ELASTICITY,
    FALLBACK_BASELINE_EMISSIONS,
)
from ssca.scenario.models import Estimate
from ssca.scenario.parameters import ScenarioParameters, ScenarioState
from ssca.utils import round2, round_half_up, safe_number

logger = logging.getLogger(__name__)


def _as_numbers(values: Iterable[Any] | None) -> list[float]:
    if not values:
        return []
    return [safe_number(v, 0.0) for v in values]


@dataclass(frozen=True)
class BaselineSource:
    """Upstream emission figures used to resolve the baseline.

    ``forecast`` is a series of forecast emission values, ``supplier_emissions``
    holds one emissions figure per supplier. Either may be empty.
    """

    forecast: tuple[float, ...] = ()
    supplier_emissions: tuple[float, ...] = ()
    fallback: float = FALLBACK_BASELINE_EMISSIONS

    @classmethod
    def from_series(
        cls,
        forecast: Iterable[Any] | None = None,
        supplier_emissions: Iterable[Any] | None = None,
        fallback: float = FALLBACK_BASELINE_EMISSIONS,
    ) -> "BaselineSource":
        return cls(
            forecast=tuple(_as_numbers(forecast)),
            supplier_emissions=tuple(_as_numbers(supplier_emissions)),
            fallback=fallback,
        )


def resolve_baseline(source: BaselineSource | None) -> tuple[float, str]:
    """Resolve baseline emissions and report where the figure came from.

    Order: forecast mean, then supplier sum, then the fallback constant.
    A supplier total of zero carries no information and falls through to
    the constant; so does a negative or non-finite mean or total.
    """
    if source is None:
        source = BaselineSource()

    # Huge inputs overflow to inf, which safe_number rejects below
    with np.errstate(over="ignore", invalid="ignore"):
        mean = float(np.mean(source.forecast)) if source.forecast else None
        total = float(np.sum(source.supplier_emissions)) if source.supplier_emissions else None

    mean = safe_number(mean, None)
    if mean is not None and mean >= 0:
        return float(round_half_up(mean)), "forecast"
    if mean is not None:
        logger.debug("Ignoring negative forecast mean %.0f", mean)

    total = safe_number(total, None)
    if total is not None and total > 0:
        return float(round_half_up(total)), "suppliers"

    fallback = max(0.0, safe_number(source.fallback, FALLBACK_BASELINE_EMISSIONS))
    logger.debug(
        "No usable forecast or supplier emissions; using fallback baseline %.0f",
        fallback,
    )
    return float(round_half_up(fallback)), "fallback"


def estimate(
    scenario: ScenarioState | ScenarioParameters,
    baseline_source: BaselineSource | None = None,
) -> Estimate:
    """Compute the heuristic Estimate for the scenario's current lever values.

    Pure and idempotent: identical inputs always give an identical Estimate.

    Worked example: modal 30%, renewable 50%, baseline 100000 gives a
    reduction of round(10.5 + 19) = 30%, optimized emissions of 70000 and a
    cost change of 2.04%.
    """
    state = scenario.snapshot() if isinstance(scenario, ScenarioParameters) else scenario
    modal = safe_number(state.modal_shift_current, 0.0)
    renew = safe_number(state.renewable_current, 0.0)

    baseline, origin = resolve_baseline(baseline_source)

    reduction_pct = round_half_up(
        modal * EMISSION_ELASTICITY["modal_shift"] + renew * EMISSION_ELASTICITY["renewable"]
    )
    cost_change_pct = round2(
        modal * COST_ELASTICITY["modal_shift"] + renew * COST_ELASTICITY["renewable"]
    )
    optimized = round_half_up(baseline * max(0.0, 1 - reduction_pct / 100))

    return Estimate(
        baseline_emissions=baseline,
        emission_reduction_pct=float(reduction_pct),
        optimized_emissions=float(optimized),
        cost_change_pct=cost_change_pct,
        baseline_source=origin,
    )
