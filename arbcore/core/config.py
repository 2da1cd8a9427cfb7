"""Pydantic settings loaded from YAML configuration."""

from __future__ import annotations

from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, SecretStr, model_validator

from arbcore.core.exceptions import ConfigError
from arbcore.core.types import (
    SOL_MINT,
    USDC_MINT,
    LoanProvider,
    RiskLevel,
    TokenPair,
    Venue,
    WalletRole,
)

_settings: Settings | None = None

_DEFAULT_CONFIG_PATH = Path("config/settings.yaml")


class EngineConfig(BaseModel):
    """Scan loop, admission and execution configuration."""

    token_pairs: list[TokenPair] = [TokenPair(base=SOL_MINT, quote=USDC_MINT)]
    venues: list[Venue] = [Venue.JUPITER, Venue.RAYDIUM, Venue.ORCA]
    min_profit_threshold: Decimal = Decimal("0.5")  # percent
    max_position_size: int = Field(default=1_000_000_000, gt=0)
    slippage_tolerance_pct: Decimal = Decimal("0.5")
    use_flash_loans: bool = True
    use_position_sizer: bool = True
    max_concurrent_operations: int = Field(default=3, ge=1)
    update_interval_ms: int = Field(default=1000, gt=0)
    oracle_timeout_secs: float = 5.0
    submission_timeout_secs: float = 30.0
    settlement_timeout_secs: float = 60.0
    assume_estimated_profit: bool = False
    usd_quote_tokens: list[str] = [USDC_MINT]
    sol_token: str = SOL_MINT


class SizingConfig(BaseModel):
    """Adaptive position sizing configuration."""

    base_position_size: int = Field(default=100_000_000, gt=0)
    max_position_size: int = Field(default=500_000_000, gt=0)
    growth_factor: float = Field(default=1.05, ge=1.0)
    reduction_factor: float = Field(default=0.9, gt=0.0, le=1.0)
    max_daily_growth: float = Field(default=1.5, ge=1.0)
    risk_level: RiskLevel = RiskLevel.CONSERVATIVE
    use_adaptive_sizing: bool = True
    use_profit_based_scaling: bool = True
    history_capacity: int = 1000
    history_evict: int = 500

    @model_validator(mode="after")
    def _check_bounds(self) -> SizingConfig:
        if self.max_position_size < self.base_position_size:
            raise ConfigError(
                f"max_position_size {self.max_position_size} is below"
                f" base_position_size {self.base_position_size}"
            )
        return self

    @classmethod
    def for_risk_level(cls, level: RiskLevel) -> SizingConfig:
        """Preset sizing parameters for a risk level."""
        presets: dict[RiskLevel, dict[str, Any]] = {
            RiskLevel.CONSERVATIVE: {
                "base_position_size": 100_000_000,
                "max_position_size": 500_000_000,
                "growth_factor": 1.05,
                "reduction_factor": 0.9,
                "max_daily_growth": 1.5,
            },
            RiskLevel.MODERATE: {
                "base_position_size": 250_000_000,
                "max_position_size": 1_000_000_000,
                "growth_factor": 1.1,
                "reduction_factor": 0.85,
                "max_daily_growth": 2.0,
            },
            RiskLevel.AGGRESSIVE: {
                "base_position_size": 500_000_000,
                "max_position_size": 2_000_000_000,
                "growth_factor": 1.2,
                "reduction_factor": 0.8,
                "max_daily_growth": 3.0,
            },
            RiskLevel.CUSTOM: {
                "base_position_size": 250_000_000,
                "max_position_size": 1_000_000_000,
                "growth_factor": 1.1,
                "reduction_factor": 0.9,
                "max_daily_growth": 2.0,
            },
        }
        return cls(risk_level=level, **presets[level])


class LoanConfig(BaseModel):
    """Flash-loan provider configuration."""

    provider: LoanProvider = LoanProvider.SOLEND
    max_loan_amount: int = Field(default=10_000_000_000, gt=0)
    fee_pct: Decimal | None = None  # provider default when unset
    program_id: str = ""  # provider default when empty


class DistributionConfig(BaseModel):
    """How distributable profit is split. Percentages must sum to 100."""

    reinvest_pct: int = Field(default=70, ge=0, le=100)
    withdraw_pct: int = Field(default=30, ge=0, le=100)
    reserve_pct: int = Field(default=0, ge=0, le=100)
    min_distribution_amount: int = Field(default=1_000_000, ge=0)
    owner_wallet: str = ""

    @model_validator(mode="after")
    def _check_split(self) -> DistributionConfig:
        total = self.reinvest_pct + self.withdraw_pct + self.reserve_pct
        if total != 100:
            raise ConfigError(
                f"Profit distribution percentages must add up to 100, got {total}"
            )
        return self


class CircuitBreakerConfig(BaseModel):
    """Trading halt thresholds."""

    enabled: bool = True
    max_consecutive_failures: int = 5
    error_window: int = 20
    max_error_rate_pct: float = 50.0


class OracleConfig(BaseModel):
    """HTTP price oracle configuration."""

    venue_urls: dict[Venue, str] = {}
    http_timeout_secs: float = 5.0
    quote_amount: int = 1_000_000
    slippage_bps: int = 50
    burst_per_sec: int = 20
    sustained_per_sec: int = 10
    api_key: SecretStr = SecretStr("")


class StorageConfig(BaseModel):
    """State persistence configuration."""

    enabled: bool = True
    path: str = "state/arbcore_state.json"


class PaperConfig(BaseModel):
    """Paper-mode signer and wallet directory configuration."""

    wallets: dict[WalletRole, list[str]] = {WalletRole.TRADING: ["paper-trading-wallet"]}
    balances: dict[str, int] = {}
    reject_probability: float = Field(default=0.0, ge=0.0, le=1.0)
    latency_ms: int = 0


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "json"
    quiet_loggers: list[str] = ["httpx", "httpcore"]


class Settings(BaseModel):
    """Root settings container."""

    engine: EngineConfig = EngineConfig()
    sizing: SizingConfig = SizingConfig()
    loan: LoanConfig = LoanConfig()
    distribution: DistributionConfig = DistributionConfig()
    circuit_breaker: CircuitBreakerConfig = CircuitBreakerConfig()
    oracle: OracleConfig = OracleConfig()
    storage: StorageConfig = StorageConfig()
    paper: PaperConfig = PaperConfig()
    logging: LoggingConfig = LoggingConfig()


def load_settings(path: str | Path | None = None) -> Settings:
    """Load settings from a YAML file and cache globally.

    Args:
        path: Path to YAML config. Defaults to config/settings.yaml.

    Returns:
        Parsed Settings instance.
    """
    global _settings  # noqa: PLW0603

    config_path = Path(path) if path else _DEFAULT_CONFIG_PATH

    data: dict[str, Any] = {}
    if config_path.exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f)
            if isinstance(raw, dict):
                data = raw

    _settings = Settings(**data)
    return _settings


def get_settings() -> Settings:
    """Return the cached settings, loading defaults if not yet loaded."""
    global _settings  # noqa: PLW0603
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Reset the cached settings (useful for testing)."""
    global _settings  # noqa: PLW0603
    _settings = None
