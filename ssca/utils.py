"""
Utility functions for the SSCA scenario engine

Provides logging setup, numeric coercion helpers, and the exception hierarchy
"""

import logging
import math
from pathlib import Path
from typing import Any, Optional


# ═══════════════════════════════════════════════════════════════════
# LOGGING
# ═══════════════════════════════════════════════════════════════════

def setup_logging(log_level: str = "INFO", log_file: Optional[str | Path] = None) -> None:
    """Configure logging for SSCA"""
    level = getattr(logging, log_level.upper(), logging.INFO)

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path))

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
        force=True,
    )


def get_logger(name: str) -> logging.Logger:
    """Get logger instance for module"""
    return logging.getLogger(name)


# ═══════════════════════════════════════════════════════════════════
# NUMERIC COERCION
# ═══════════════════════════════════════════════════════════════════

def safe_number(value: Any, default: Optional[float] = 0.0) -> Optional[float]:
    """Coerce ``value`` to a finite float, returning ``default`` otherwise.

    Accepts ints, floats and numeric strings. ``None``, booleans, NaN,
    infinities and anything unparseable yield ``default``.
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return default
    else:
        return default
    if math.isnan(number) or math.isinf(number):
        return default
    return number


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    """Clamp ``value`` into ``[low, high]``."""
    return max(low, min(high, value))


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 rounding toward +infinity."""
    return int(math.floor(value + 0.5))


def round2(value: float) -> float:
    """Round to two decimal places."""
    return round(value, 2)


# ═══════════════════════════════════════════════════════════════════
# EXCEPTIONS
# ═══════════════════════════════════════════════════════════════════

class SSCAError(Exception):
    """Base exception for SSCA"""
    pass


class BackendUnavailableError(SSCAError, ConnectionError):
    """Backend could not be reached or answered with an HTTP error"""
    pass


class BackendRejectedError(SSCAError):
    """Backend answered but reported ``success: false``"""
    pass
