"""Engine configuration.

Limits and tolerances are read once from ``SYMCALC_*`` environment variables
and cached; the resulting :class:`EngineSettings` is immutable, so it can be
shared freely between threads.

Usage:
    from config import get_settings

    settings = get_settings()
    settings.max_depth        # 200 unless SYMCALC_MAX_DEPTH is set
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from errors import InvalidInputError

_ENV_PREFIX = "SYMCALC_"


@dataclass(frozen=True)
class EngineSettings:
    """Process-wide engine limits."""

    max_depth: int = 200                # deepest tree any walker accepts
    max_operations: int = 100_000       # simplifier node-visit budget
    pivot_tolerance: float = 1e-12      # |pivot| below this is singular
    snap_tolerance: float = 1e-10       # solution values this close to an int are snapped
    log_level: str = "WARNING"
    log_json: bool = False


def _read(environ: Mapping[str, str], name: str, cast, default):
    raw = environ.get(_ENV_PREFIX + name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = cast(raw.strip())
    except ValueError:
        raise InvalidInputError(
            f"Invalid value for {_ENV_PREFIX}{name}: {raw!r}",
            {"variable": _ENV_PREFIX + name, "value": raw},
        ) from None
    return value


def _to_bool(raw: str) -> bool:
    lowered = raw.lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off"):
        return False
    raise ValueError(raw)


def load_settings(environ: Optional[Mapping[str, str]] = None) -> EngineSettings:
    """Build settings from environment variables, falling back to the defaults.

    Parameters
    ----------
    environ : Mapping[str, str] or None
        Variables to read; ``os.environ`` when omitted.

    Returns
    -------
    EngineSettings

    Raises
    ------
    InvalidInputError
        If a variable cannot be converted, or a limit is not positive.

    Examples
    --------
    >>> load_settings({"SYMCALC_MAX_DEPTH": "50"}).max_depth
    50
    >>> load_settings({}).pivot_tolerance
    1e-12
    """
    if environ is None:
        environ = os.environ
    defaults = EngineSettings()

    settings = EngineSettings(
        max_depth=_read(environ, "MAX_DEPTH", int, defaults.max_depth),
        max_operations=_read(environ, "MAX_OPERATIONS", int, defaults.max_operations),
        pivot_tolerance=_read(environ, "PIVOT_TOLERANCE", float, defaults.pivot_tolerance),
        snap_tolerance=_read(environ, "SNAP_TOLERANCE", float, defaults.snap_tolerance),
        log_level=_read(environ, "LOG_LEVEL", str.upper, defaults.log_level),
        log_json=_read(environ, "LOG_JSON", _to_bool, defaults.log_json),
    )

    for field_name in ("max_depth", "max_operations"):
        if getattr(settings, field_name) <= 0:
            raise InvalidInputError(
                f"{field_name} must be positive",
                {"field": field_name, "value": getattr(settings, field_name)},
            )
    return settings


_settings: Optional[EngineSettings] = None


def get_settings(reload: bool = False) -> EngineSettings:
    """Return the cached process settings, loading them on first use."""
    global _settings
    if _settings is None or reload:
        _settings = load_settings()
    return _settings


__all__ = ["EngineSettings", "load_settings", "get_settings"]
