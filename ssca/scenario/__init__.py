"""Scenario simulation engine: levers, heuristic estimate, Pareto front, playback and playbook.

Importable without the backend or any running service.
"""

from ssca.scenario.estimator import BaselineSource, estimate, resolve_baseline
from ssca.scenario.models import (
    Estimate,
    OptimizationResult,
    ParetoPoint,
    ParetoSolution,
    Reconciliation,
    SavedScenario,
)
from ssca.scenario.pareto import synthesize_front
from ssca.scenario.parameters import Lever, ScenarioParameters, ScenarioState
from ssca.scenario.playback import PlaybackController, PlaybackState
from ssca.scenario.playbook import PlaybookListing, PlaybookStore

__all__ = [
    "BaselineSource",
    "Estimate",
    "Lever",
    "OptimizationResult",
    "ParetoPoint",
    "ParetoSolution",
    "PlaybackController",
    "PlaybackState",
    "PlaybookListing",
    "PlaybookStore",
    "Reconciliation",
    "SavedScenario",
    "ScenarioParameters",
    "ScenarioState",
    "estimate",
    "resolve_baseline",
    "synthesize_front",
]
