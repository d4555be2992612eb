"""Pareto front synthesizer.

Turns optimizer candidate solutions into a ranked visualization dataset
with a cumulative emissions share per point. When the optimizer returned no
front, a reproducible one is fabricated from the baseline and optimized
figures so the chart is never empty.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

from ssca.scenario.constants import (
    BASELINE_LABEL,
    OPTIMIZED_LABEL,
    SYNTHETIC_FRONT_MULTIPLIERS,
)
from ssca.scenario.models import OptimizationResult, ParetoPoint, ParetoSolution
from ssca.utils import round_half_up

logger = logging.getLogger(__name__)


def synthetic_solutions(result: OptimizationResult) -> list[ParetoSolution]:
    """Baseline, optimized and three interpolated alternatives.

    Returned in the order Baseline, Conservative, Optimized, Balanced,
    Aggressive, which is the tie-break order for equal emissions.
    """
    base_cost = round_half_up(result.baseline_cost)
    base_emissions = round_half_up(result.baseline_emissions)

    baseline = ParetoSolution(cost=base_cost, emissions=base_emissions, label=BASELINE_LABEL)
    optimized = ParetoSolution(
        cost=round_half_up(result.optimized_cost),
        emissions=round_half_up(result.optimized_emissions),
        label=OPTIMIZED_LABEL,
    )
    alternatives = [
        ParetoSolution(
            cost=round_half_up(base_cost * cost_mult),
            emissions=round_half_up(base_emissions * emis_mult),
            label=label,
        )
        for label, cost_mult, emis_mult in SYNTHETIC_FRONT_MULTIPLIERS
    ]
    conservative, balanced, aggressive = alternatives
    return [baseline, conservative, optimized, balanced, aggressive]


def rank_front(solutions: Iterable[ParetoSolution]) -> list[ParetoPoint]:
    """Sort by descending emissions (stable) and attach cumulative share."""
    points = [
        ParetoPoint(
            id=idx,
            cost=round_half_up(sol.cost),
            emissions=round_half_up(sol.emissions),
            label=sol.label,
            kind=ParetoPoint.kind_for(sol.label),
        )
        for idx, sol in enumerate(solutions)
    ]
    # sorted() is stable, so equal emissions keep their input order
    ranked = sorted(points, key=lambda p: -p.emissions)

    total = sum(p.emissions for p in ranked)
    running = 0
    for point in ranked:
        running += point.emissions
        point.cumulative_pct = round_half_up(running / total * 100) if total else 0
    return ranked


def synthesize_front(
    solutions: Iterable[Any] | None = None,
    result: OptimizationResult | None = None,
) -> list[ParetoPoint]:
    """Build the Pareto visualization dataset.

    Real candidate solutions win when present (raw dict rows are
    normalized); otherwise the front is synthesized from ``result``. With
    neither, the dataset is empty.
    """
    rows = list(solutions) if solutions else []
    if not rows and result is not None and result.pareto_solutions:
        rows = list(result.pareto_solutions)

    if rows:
        normalized = [ParetoSolution.from_raw(row, idx) for idx, row in enumerate(rows)]
        return rank_front(normalized)

    if result is None:
        return []

    logger.debug("Optimizer returned no Pareto front; synthesizing from baseline/optimized figures")
    return rank_front(synthetic_solutions(result))
