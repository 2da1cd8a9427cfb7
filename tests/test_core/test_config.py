"""Tests for arbcore/core/config.py — YAML loading, defaults, validation."""

from __future__ import annotations

from decimal import Decimal
from pathlib import Path

import pytest
import yaml

from arbcore.core.config import (
    DistributionConfig,
    EngineConfig,
    LoanConfig,
    OracleConfig,
    Settings,
    SizingConfig,
    get_settings,
    load_settings,
    reset_settings,
)
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


@pytest.fixture(autouse=True)
def _clean_settings() -> None:
    """Reset the global settings cache before each test."""
    reset_settings()


class TestDefaults:
    def test_default_engine_config(self) -> None:
        cfg = EngineConfig()
        assert cfg.token_pairs == [TokenPair(base=SOL_MINT, quote=USDC_MINT)]
        assert cfg.venues == [Venue.JUPITER, Venue.RAYDIUM, Venue.ORCA]
        assert cfg.min_profit_threshold == Decimal("0.5")
        assert cfg.max_concurrent_operations == 3
        assert cfg.use_flash_loans is True
        assert cfg.assume_estimated_profit is False

    def test_default_sizing_config(self) -> None:
        cfg = SizingConfig()
        assert cfg.base_position_size == 100_000_000
        assert cfg.max_position_size == 500_000_000
        assert cfg.growth_factor == 1.05
        assert cfg.reduction_factor == 0.9
        assert cfg.history_capacity == 1000
        assert cfg.history_evict == 500

    def test_default_loan_config(self) -> None:
        cfg = LoanConfig()
        assert cfg.provider == LoanProvider.SOLEND
        assert cfg.fee_pct is None

    def test_default_distribution(self) -> None:
        cfg = DistributionConfig()
        assert (cfg.reinvest_pct, cfg.withdraw_pct, cfg.reserve_pct) == (70, 30, 0)

    def test_oracle_api_key_is_secret(self) -> None:
        cfg = OracleConfig(api_key="hunter2")  # type: ignore[arg-type]
        assert "hunter2" not in repr(cfg)
        assert cfg.api_key.get_secret_value() == "hunter2"


class TestValidation:
    def test_distribution_must_sum_to_100(self) -> None:
        with pytest.raises(ConfigError, match="add up to 100"):
            DistributionConfig(reinvest_pct=70, withdraw_pct=20, reserve_pct=0)

    def test_distribution_accepts_full_reserve(self) -> None:
        cfg = DistributionConfig(reinvest_pct=0, withdraw_pct=0, reserve_pct=100)
        assert cfg.reserve_pct == 100

    def test_sizing_max_below_base_rejected(self) -> None:
        with pytest.raises(ConfigError):
            SizingConfig(base_position_size=200, max_position_size=100)

    def test_risk_level_presets(self) -> None:
        moderate = SizingConfig.for_risk_level(RiskLevel.MODERATE)
        assert moderate.risk_level == RiskLevel.MODERATE
        assert moderate.base_position_size == 250_000_000
        assert moderate.max_daily_growth == 2.0

        aggressive = SizingConfig.for_risk_level(RiskLevel.AGGRESSIVE)
        assert aggressive.growth_factor == 1.2
        assert aggressive.max_position_size == 2_000_000_000


class TestYamlLoading:
    def test_load_from_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "settings.yaml"
        path.write_text(yaml.safe_dump({
            "engine": {
                "min_profit_threshold": "0.25",
                "venues": ["ORCA", "JUPITER"],
                "max_concurrent_operations": 7,
            },
            "distribution": {"reinvest_pct": 50, "withdraw_pct": 25, "reserve_pct": 25},
            "paper": {"wallets": {"TRADING": ["w1", "w2"]}},
        }))

        s = load_settings(path)
        assert s.engine.min_profit_threshold == Decimal("0.25")
        assert s.engine.venues == [Venue.ORCA, Venue.JUPITER]
        assert s.engine.max_concurrent_operations == 7
        assert s.distribution.reserve_pct == 25
        assert s.paper.wallets[WalletRole.TRADING] == ["w1", "w2"]

    def test_missing_file_uses_defaults(self, tmp_path: Path) -> None:
        s = load_settings(tmp_path / "nope.yaml")
        assert s == Settings()

    def test_empty_file_uses_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "settings.yaml"
        path.write_text("")
        s = load_settings(path)
        assert s.sizing.base_position_size == 100_000_000

    def test_invalid_split_in_yaml_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "settings.yaml"
        path.write_text(yaml.safe_dump({
            "distribution": {"reinvest_pct": 60, "withdraw_pct": 30, "reserve_pct": 0},
        }))
        with pytest.raises(ConfigError):
            load_settings(path)

    def test_get_settings_caches(self, tmp_path: Path) -> None:
        path = tmp_path / "settings.yaml"
        path.write_text(yaml.safe_dump({"engine": {"update_interval_ms": 250}}))
        loaded = load_settings(path)
        assert get_settings() is loaded
        assert get_settings().engine.update_interval_ms == 250
