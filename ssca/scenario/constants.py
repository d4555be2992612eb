"""
Scenario engine constants.
Heuristic elasticities, optimizer-response defaults and synthetic Pareto
multipliers used across the scenario package.
"""

# Lever bounds (percent)
LEVER_MIN: float = 0.0
LEVER_MAX: float = 100.0

# Session-start defaults for both levers
DEFAULT_MODAL_SHIFT_PCT: float = 30.0
DEFAULT_RENEWABLE_PCT: float = 50.0

# Heuristic elasticities: % total emission reduction per lever percentage point.
# Modal shift mostly acts on logistics emissions, renewables on operations.
# The two are summed with no interaction term.
EMISSION_ELASTICITY: dict[str, float] = {
    "modal_shift": 0.35,
    "renewable": 0.38,
}

# % cost increase per lever percentage point (carrier and sourcing premiums)
COST_ELASTICITY: dict[str, float] = {
    "modal_shift": 0.018,
    "renewable": 0.03,
}

# Baseline used when neither a forecast nor supplier emissions are available (kg CO2e)
FALLBACK_BASELINE_EMISSIONS: float = 100_000.0

# Field-by-field substitutes for a partial optimizer response
OPTIMIZATION_DEFAULTS: dict[str, float] = {
    "baseline_emissions": 100_000.0,
    "optimized_emissions": 80_000.0,
    "emission_reduction_pct": 20.0,
    "cost_change_pct": 5.0,
    "baseline_cost": 500_000.0,
    "optimized_cost": 525_000.0,
}

# Intermediate points fabricated when the optimizer returns no front.
# Each entry: (label, cost multiplier, emissions multiplier) relative to baseline.
SYNTHETIC_FRONT_MULTIPLIERS: list[tuple[str, float, float]] = [
    ("Conservative", 1.02, 0.92),
    ("Balanced", 1.04, 0.85),
    ("Aggressive", 1.08, 0.75),
]

BASELINE_LABEL = "Baseline"
OPTIMIZED_LABEL = "Optimized"

# Planner presets: (modal shift %, renewable increase %)
SCENARIO_PRESETS: dict[str, dict[str, float]] = {
    "Conservative":     {"modal_shift_pct": 15, "renewable_increase_pct": 10},
    "Balanced":         {"modal_shift_pct": 30, "renewable_increase_pct": 40},
    "Aggressive Green": {"modal_shift_pct": 50, "renewable_increase_pct": 70},
}

# Playback timeline
TIMELINE_END: int = 100
DEFAULT_TICK_STEP: int = 2
DEFAULT_TICK_PERIOD_S: float = 0.45
