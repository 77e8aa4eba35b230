"""Portfolio configuration.

Two layers:
- PortfolioSettings: environment / .env defaults (XTRENDER_ prefix)
- RunConfig: a YAML run file selecting modes, strategy params, filters,
  position size and time range
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from portfolio.aggregation import TIME_RANGES, PerformanceFilters
from xtrender.models import Mode

logger = logging.getLogger(__name__)


class PortfolioSettings(BaseSettings):
    """Portfolio defaults loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="XTRENDER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Position size per trade in the capital simulation
    amount: float = 100.0
    time_range: str = "1y"
    default_strategy: str = "defensive"
    output_dir: str = "results"


_settings: PortfolioSettings | None = None


def get_settings() -> PortfolioSettings:
    """Get cached portfolio settings instance."""
    global _settings
    if _settings is None:
        _settings = PortfolioSettings()
    return _settings


class RunConfig(BaseModel):
    """One portfolio run as described by a YAML file.

    Example::

        amount: 250
        time_range: 2y
        modes: [defensive, quant]
        strategy_params:
          quant: {tslPercent: 15, maFilterOn: false}
        filters:
          min_winrate: 50
          min_market_cap: 10
    """

    model_config = ConfigDict(frozen=True)

    amount: float = Field(default_factory=lambda: get_settings().amount)
    time_range: str = Field(default_factory=lambda: get_settings().time_range)
    modes: list[str] = Field(default_factory=lambda: [m.value for m in Mode])
    strategy_params: dict[str, dict[str, Any]] = Field(default_factory=dict)
    filters: PerformanceFilters = Field(default_factory=PerformanceFilters)
    symbols: list[str] | None = None

    @model_validator(mode="after")
    def _check(self):
        if self.time_range not in TIME_RANGES and self.time_range != "all":
            valid = ", ".join([*TIME_RANGES, "all"])
            raise ValueError(f"Unknown time_range '{self.time_range}'. Valid: {valid}")
        if not self.modes:
            raise ValueError("At least one mode is required")
        unknown = set(self.strategy_params) - set(self.modes)
        if unknown:
            raise ValueError(
                f"strategy_params for modes not in run: {', '.join(sorted(unknown))}"
            )
        return self


def load_run_config(path: str | Path) -> RunConfig:
    """Load and validate a YAML run config.

    Raises:
        OSError: If the file cannot be read.
        pydantic.ValidationError: If the content is invalid.
    """
    with open(path) as f:
        raw = yaml.safe_load(f) or {}
    config = RunConfig.model_validate(raw)
    logger.info(
        "Loaded run config %s: modes=%s, range=%s, amount=%.2f",
        path, ",".join(config.modes), config.time_range, config.amount,
    )
    return config
