"""
Epoch Points TOML Configuration Loader

Loads the program configuration file with environment variable overrides.
Every section is a dataclass with from_dict / apply_env, and the root
ProgramConfig adds from_file / validate / to_dict.

Environment variable mapping:
    [program] admin             -> EPOCHPOINTS_ADMIN
    [program] accruers          -> EPOCHPOINTS_ACCRUERS (comma separated)
    [program] launch_time       -> EPOCHPOINTS_LAUNCH_TIME
    [claims]  window_days       -> EPOCHPOINTS_CLAIM_WINDOW_DAYS
    [claims]  open_epoch        -> EPOCHPOINTS_CLAIMS_OPEN_EPOCH
    [claims]  cutover_epoch     -> EPOCHPOINTS_CUTOVER_EPOCH
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

try:
    import tomllib as tomli  # Python 3.11+
except ImportError:
    import tomli  # type: ignore[no-redef]

from ..constants import (
    CLAIM_WINDOW_DAYS,
    CLAIMS_OPEN_EPOCH,
    HISTORICAL_REWARD_SCHEDULE,
    SECONDS_PER_DAY,
    TRANSITION_CUTOVER_EPOCH,
    U64_MAX,
    VALID_ADDRESS_PATTERN,
)
from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Section dataclasses
# ---------------------------------------------------------------------------


@dataclass
class ProgramSectionConfig:
    """[program] section."""
    admin: str = ""
    accruers: List[str] = field(default_factory=list)
    launch_time: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProgramSectionConfig":
        return cls(
            admin=data.get("admin", ""),
            accruers=list(data.get("accruers", [])),
            launch_time=int(data.get("launch_time", 0)),
        )

    def apply_env(self) -> None:
        """Override from environment variables."""
        if v := os.environ.get("EPOCHPOINTS_ADMIN"):
            self.admin = v
        if v := os.environ.get("EPOCHPOINTS_ACCRUERS"):
            self.accruers = [a.strip() for a in v.split(",") if a.strip()]
        if v := os.environ.get("EPOCHPOINTS_LAUNCH_TIME"):
            self.launch_time = int(v)


@dataclass
class ClaimsConfig:
    """[claims] section."""
    window_days: int = CLAIM_WINDOW_DAYS
    open_epoch: int = CLAIMS_OPEN_EPOCH
    cutover_epoch: int = TRANSITION_CUTOVER_EPOCH

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ClaimsConfig":
        return cls(
            window_days=int(data.get("window_days", CLAIM_WINDOW_DAYS)),
            open_epoch=int(data.get("open_epoch", CLAIMS_OPEN_EPOCH)),
            cutover_epoch=int(data.get("cutover_epoch", TRANSITION_CUTOVER_EPOCH)),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("EPOCHPOINTS_CLAIM_WINDOW_DAYS"):
            self.window_days = int(v)
        if v := os.environ.get("EPOCHPOINTS_CLAIMS_OPEN_EPOCH"):
            self.open_epoch = int(v)
        if v := os.environ.get("EPOCHPOINTS_CUTOVER_EPOCH"):
            self.cutover_epoch = int(v)

    @property
    def window_seconds(self) -> int:
        return self.window_days * SECONDS_PER_DAY


@dataclass
class ScheduleConfig:
    """[schedule] section. `historical[i]` is the reward pool of epoch i + 1."""
    historical: List[int] = field(default_factory=lambda: list(HISTORICAL_REWARD_SCHEDULE))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScheduleConfig":
        historical = data.get("historical")
        if historical is None:
            historical = list(HISTORICAL_REWARD_SCHEDULE)
        return cls(historical=[int(x) for x in historical])


# ---------------------------------------------------------------------------
# Root config
# ---------------------------------------------------------------------------


@dataclass
class ProgramConfig:
    """Complete points program configuration."""
    program: ProgramSectionConfig = field(default_factory=ProgramSectionConfig)
    claims: ClaimsConfig = field(default_factory=ClaimsConfig)
    schedule: ScheduleConfig = field(default_factory=ScheduleConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProgramConfig":
        return cls(
            program=ProgramSectionConfig.from_dict(data.get("program", {})),
            claims=ClaimsConfig.from_dict(data.get("claims", {})),
            schedule=ScheduleConfig.from_dict(data.get("schedule", {})),
        )

    @classmethod
    def from_file(cls, path: str) -> "ProgramConfig":
        """
        Load from a TOML file, then apply env overrides.

        A missing file yields the defaults (with env overrides).
        """
        config_path = Path(path)
        if config_path.exists():
            with open(config_path, "rb") as f:
                try:
                    data = tomli.load(f)
                except tomli.TOMLDecodeError as e:
                    raise ConfigurationError(f"Invalid TOML in {config_path}: {e}") from e
            config = cls.from_dict(data)
            logger.info(f"Loaded program config from {config_path}")
        else:
            config = cls()
            logger.debug(f"Config file {config_path} not found, using defaults")

        config.apply_env()
        return config

    def apply_env(self) -> None:
        self.program.apply_env()
        self.claims.apply_env()

    # --- validation -------------------------------------------------------

    def validate(self) -> bool:
        """
        Validate all configuration sections.

        Raises:
            ConfigurationError: on invalid config
        """
        if not VALID_ADDRESS_PATTERN.match(self.program.admin or ""):
            raise ConfigurationError(f"Invalid admin address: {self.program.admin!r}")
        for accruer in self.program.accruers:
            if not VALID_ADDRESS_PATTERN.match(accruer):
                raise ConfigurationError(f"Invalid accruer address: {accruer!r}")
        if self.program.launch_time < 0:
            raise ConfigurationError("launch_time must be >= 0")
        if self.claims.window_days < 1:
            raise ConfigurationError("claim window_days must be >= 1")
        if self.claims.open_epoch < 1:
            raise ConfigurationError("claims open_epoch must be >= 1")
        if self.claims.cutover_epoch < 0:
            raise ConfigurationError("cutover_epoch must be >= 0")
        for i, amount in enumerate(self.schedule.historical, start=1):
            if not 0 <= amount <= U64_MAX:
                raise ConfigurationError(f"Historical reward for epoch {i} out of range: {amount}")
        return True

    # --- serialisation ----------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dict (for diagnostics, NOT for re-creating TOML)."""
        return {
            "program": {
                "admin": self.program.admin,
                "accruers": list(self.program.accruers),
                "launch_time": self.program.launch_time,
            },
            "claims": {
                "window_days": self.claims.window_days,
                "open_epoch": self.claims.open_epoch,
                "cutover_epoch": self.claims.cutover_epoch,
            },
            "schedule": {
                "historical": list(self.schedule.historical),
            },
        }


# -----------------------------------------------------------------------
# Convenience function
# -----------------------------------------------------------------------

def load_config(path: Optional[str] = None) -> ProgramConfig:
    """
    Load program configuration.

    Resolution order:
        1. Explicit *path* argument
        2. EPOCHPOINTS_CONFIG env var
        3. ./epochpoints.toml in current directory
        4. Defaults (with env overrides)
    """
    if path is None:
        path = os.environ.get("EPOCHPOINTS_CONFIG", "epochpoints.toml")

    return ProgramConfig.from_file(path)
