"""
Configuration management for the SSCA scenario engine

Loads settings from:
1. config/config.yaml
2. Environment variables (.env, SSCA_ prefix)
3. Default values
"""

from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Load environment variables
load_dotenv()

_DEFAULT_YAML = Path(__file__).parent.parent / "config" / "config.yaml"


class Config(BaseSettings):
    """SSCA configuration settings"""

    model_config = SettingsConfigDict(
        env_prefix="SSCA_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Backend
    api_base_url: str = Field(default="http://localhost:8000")
    request_timeout: float = 30.0
    health_timeout: float = 5.0

    # Playback
    tick_period_s: float = Field(default=0.45, gt=0)
    tick_step: int = Field(default=2, ge=1, le=100)
    optimize_every: int = Field(default=1, ge=1)

    # Estimator
    fallback_baseline_emissions: float = Field(default=100_000.0, ge=0)

    # Forecast / supplier data source
    facility_id: str = "F001"
    forecast_horizon_days: int = Field(default=30, ge=1)

    # Logging
    log_level: str = "INFO"
    log_file: Optional[Path] = None

    @classmethod
    def from_yaml(cls, yaml_path: str | Path = _DEFAULT_YAML) -> "Config":
        """Load configuration from YAML file, falling back to env/defaults"""
        yaml_path = Path(yaml_path)
        if not yaml_path.exists():
            return cls()

        with open(yaml_path) as f:
            config_data = yaml.safe_load(f) or {}

        return cls(**config_data)


# Global configuration instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create global configuration instance"""
    global _config
    if _config is None:
        _config = Config.from_yaml()
    return _config


def reload_config(yaml_path: Optional[str | Path] = None) -> Config:
    """Reload configuration from file"""
    global _config
    _config = Config.from_yaml(yaml_path) if yaml_path else Config.from_yaml()
    return _config
