"""
Epoch Points Configuration

Loads the [program], [claims] and [schedule] sections of epochpoints.toml.
Environment variables override TOML values.
"""

from .loader import (
    ProgramConfig,
    ProgramSectionConfig,
    ClaimsConfig,
    ScheduleConfig,
    load_config,
)

__all__ = [
    "ProgramConfig",
    "ProgramSectionConfig",
    "ClaimsConfig",
    "ScheduleConfig",
    "load_config",
]
