"""HTTP clients for the SSCA backend (optimizer, playbook, data source, health)."""

from ssca.services.backend_client import (
    DataSourceClient,
    HealthClient,
    OptimizerClient,
    PlaybookClient,
)

__all__ = [
    "DataSourceClient",
    "HealthClient",
    "OptimizerClient",
    "PlaybookClient",
]
