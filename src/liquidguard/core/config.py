"""
LiquidGuard Engine Configuration

Calibration constants for the hook engine, with overrides from the
environment (LIQUIDGUARD_* variables) or a YAML file.

All values are integers: ticks, basis points, or WAD (1e18) scaled ratios.
Floating point is never used for thresholds.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

WAD = 10**18


# Get network type from environment variable
NETWORK = os.getenv("LIQUIDGUARD_NETWORK", "testnet")  # Default to testnet for safety
LOG_LEVEL = os.getenv("LIQUIDGUARD_LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LIQUIDGUARD_LOG_FILE", "").strip()
# Set to 0 to run engines without Prometheus collectors
METRICS_ENABLED = os.getenv("LIQUIDGUARD_METRICS_ENABLED", "1").strip() == "1"

ENV_PREFIX = "LIQUIDGUARD_"


@dataclass(frozen=True)
class EngineConfig:
    """
    Calibration constants used by the hook engine.

    Defaults are the production calibration; tests and simulations may
    override individual values with dataclasses.replace().
    """

    # Tick history
    history_capacity: int = 100
    min_volatility_samples: int = 10
    volatility_window: int = 50
    default_volatility: int = 50

    # Standard deviation (in ticks) mapped to a score of 100
    stddev_cap_ticks: int = 200

    # Tick grid
    tick_spacing: int = 60

    # Range optimizer offsets, in ticks at a threshold of exactly 1.0
    lower_range_factor: int = 2000
    upper_range_factor: int = 1200

    # LP optimizer hysteresis: bound drift tolerated before rebalancing
    rebalance_threshold_bps: int = 500

    # User positions: proximity to a boundary that triggers a rebalance
    boundary_proximity_bps: int = 1000
    min_half_width: int = 200
    max_half_width: int = 2000
    half_width_per_volatility_point: int = 20

    # Synthetic health metrics for binary-liquidatable protocols
    liquidatable_health: int = 95 * WAD // 100
    undercollateralized_health: int = 99 * WAD // 100
    healthy_health: int = 120 * WAD // 100

    def __post_init__(self) -> None:
        """Validate calibration values."""
        for f in fields(self):
            value = getattr(self, f.name)
            if not isinstance(value, int) or isinstance(value, bool):
                raise ConfigurationError(
                    f"{f.name} must be an integer",
                    {"field": f.name, "value": value},
                )
            if value < 0:
                raise ConfigurationError(
                    f"{f.name} must be non-negative",
                    {"field": f.name, "value": value},
                )

        if self.tick_spacing <= 0:
            raise ConfigurationError("tick_spacing must be positive")
        if self.history_capacity < self.min_volatility_samples:
            raise ConfigurationError(
                "history_capacity must hold at least min_volatility_samples ticks"
            )
        if self.min_volatility_samples < 2 or self.volatility_window < 2:
            raise ConfigurationError("volatility needs at least two samples")
        if self.stddev_cap_ticks == 0:
            raise ConfigurationError("stddev_cap_ticks must be positive")
        if self.min_half_width > self.max_half_width:
            raise ConfigurationError("min_half_width exceeds max_half_width")
        if self.default_volatility > 100:
            raise ConfigurationError("default_volatility must be within [0, 100]")
        if not (
            self.liquidatable_health
            < self.undercollateralized_health
            < self.healthy_health
        ):
            raise ConfigurationError("health sentinels must be strictly increasing")

    # ==================== Loaders ====================

    @classmethod
    def from_mapping(cls, values: dict[str, Any], base: EngineConfig | None = None) -> EngineConfig:
        """Build a config from a mapping of field names to integer values."""
        base = base or cls()
        known = {f.name for f in fields(cls)}
        unknown = set(values) - known
        if unknown:
            raise ConfigurationError(
                "Unknown configuration keys",
                {"keys": sorted(unknown)},
            )

        overrides: dict[str, int] = {}
        for name, raw in values.items():
            try:
                overrides[name] = int(raw)
            except (TypeError, ValueError) as exc:
                raise ConfigurationError(
                    f"{name} must be an integer",
                    {"field": name, "value": raw},
                ) from exc

        return replace(base, **overrides)

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> EngineConfig:
        """
        Load overrides from LIQUIDGUARD_<FIELD> environment variables.

        Example:
            LIQUIDGUARD_TICK_SPACING=10 selects a 10-tick grid.
        """
        environ = os.environ if environ is None else environ
        values: dict[str, str] = {}
        for f in fields(cls):
            raw = environ.get(f"{ENV_PREFIX}{f.name.upper()}", "").strip()
            if raw:
                values[f.name] = raw

        config = cls.from_mapping(values)
        if values:
            logger.info(
                "Engine configuration overridden from environment",
                extra={
                    "event": "config.env_overrides",
                    "keys": sorted(values),
                }
            )
        return config

    @classmethod
    def from_yaml(cls, path: str | Path) -> EngineConfig:
        """
        Load overrides from a YAML file.

        The file holds a mapping, optionally nested under an ``engine`` key.
        """
        config_path = Path(path)
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                document = yaml.safe_load(f) or {}
        except OSError as exc:
            raise ConfigurationError(
                f"Cannot read configuration file {config_path}"
            ) from exc
        except yaml.YAMLError as exc:
            raise ConfigurationError(
                f"Invalid YAML in configuration file {config_path}"
            ) from exc

        if not isinstance(document, dict):
            raise ConfigurationError("Configuration file must contain a mapping")

        section = document.get("engine", document)
        if not isinstance(section, dict):
            raise ConfigurationError("'engine' section must be a mapping")

        config = cls.from_mapping(section)
        logger.info(
            "Engine configuration loaded",
            extra={
                "event": "config.yaml_loaded",
                "path": str(config_path),
                "keys": sorted(section),
            }
        )
        return config

    def to_dict(self) -> dict[str, int]:
        """Export configuration values."""
        return {f.name: getattr(self, f.name) for f in fields(self)}


DEFAULT_CONFIG = EngineConfig()
