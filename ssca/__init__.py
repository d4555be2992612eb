"""
SSCA (Sustainable Supply Chain Assistant) scenario engine
Lever sweeps, heuristic impact estimates and optimizer reconciliation
"""

__version__ = "0.1.0"
__author__ = "SSCA Team"

from ssca.config import Config, get_config
from ssca.scenario import (
    BaselineSource,
    PlaybackController,
    PlaybookStore,
    ScenarioParameters,
    estimate,
    synthesize_front,
)

__all__ = [
    "Config",
    "get_config",
    "BaselineSource",
    "PlaybackController",
    "PlaybookStore",
    "ScenarioParameters",
    "estimate",
    "synthesize_front",
]
