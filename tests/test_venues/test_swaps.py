"""Tests for venue registry and swap-leg assembly."""

from __future__ import annotations

from decimal import Decimal

import pytest

from arbcore.core.exceptions import ParameterError
from arbcore.core.types import (
    ArbitrageOpportunity,
    PriceQuote,
    SwapParams,
    TokenPair,
    Venue,
)
from arbcore.venues.swaps import VENUE_SPECS, build_swap, build_trade_legs, min_amount_out

PAIR = TokenPair(base="SOL", quote="USDC")


def _quote(venue: Venue, price: str, liquidity: int = 10_000_000) -> PriceQuote:
    return PriceQuote(
        venue=venue, base=PAIR.base, quote=PAIR.quote,
        price=Decimal(price), liquidity=liquidity,
    )


def _opp(buy: str = "1.00", sell: str = "1.01") -> ArbitrageOpportunity:
    return ArbitrageOpportunity(
        pair=PAIR,
        buy_quote=_quote(Venue.ORCA, buy),
        sell_quote=_quote(Venue.JUPITER, sell),
        spread_pct=Decimal("1.0"),
        estimated_profit=10_000,
        max_trade_size=1_000_000,
    )


def _params(**overrides: object) -> SwapParams:
    defaults: dict[str, object] = {
        "amount_in": 1_000,
        "min_amount_out": 990,
        "source_token": "USDC",
        "destination_token": "SOL",
        "source_wallet": "w",
        "destination_wallet": "w",
    }
    defaults.update(overrides)
    return SwapParams(**defaults)  # type: ignore[arg-type]


class TestRegistry:
    def test_every_venue_has_a_spec(self) -> None:
        assert set(VENUE_SPECS) == set(Venue)

    def test_discriminators_unique(self) -> None:
        discriminators = [s.discriminator for s in VENUE_SPECS.values()]
        assert len(set(discriminators)) == len(discriminators)


class TestMinAmountOut:
    def test_applies_slippage(self) -> None:
        assert min_amount_out(1_000_000, Decimal("1"), Decimal("0.5")) == 995_000

    def test_floors(self) -> None:
        assert min_amount_out(3, Decimal("1"), Decimal("50")) == 1

    def test_zero_slippage(self) -> None:
        assert min_amount_out(1_000, Decimal("2"), Decimal("0")) == 2_000


class TestBuildSwap:
    def test_instruction_shape(self) -> None:
        ix = build_swap(Venue.RAYDIUM, _params())
        assert ix.kind == "swap"
        assert ix.source == "RAYDIUM"
        assert ix.program_id == VENUE_SPECS[Venue.RAYDIUM].program_id
        assert ix.params["amount_in"] == 1_000
        assert ix.params["min_amount_out"] == 990
        assert ix.params["slippage_bps"] == 50
        assert ix.signers == ["w"]

    def test_rejects_non_positive_amount(self) -> None:
        with pytest.raises(ParameterError):
            build_swap(Venue.ORCA, _params(amount_in=0))


class TestBuildTradeLegs:
    def test_buy_then_sell(self) -> None:
        legs = build_trade_legs(_opp(), 1_000_000, "wallet", Decimal("0"))
        assert [leg.source for leg in legs] == ["ORCA", "JUPITER"]

        buy, sell = legs
        assert buy.accounts[2:] == ["USDC", "SOL"]
        assert sell.accounts[2:] == ["SOL", "USDC"]
        # sell leg spends what the buy leg guarantees
        assert sell.params["amount_in"] == buy.params["min_amount_out"]

    def test_sell_leg_min_out_reflects_sell_price(self) -> None:
        buy, sell = build_trade_legs(_opp("2", "2.02"), 1_000_000, "w", Decimal("0"))
        assert buy.params["min_amount_out"] == 500_000
        assert sell.params["min_amount_out"] == 1_010_000

    def test_rejects_zero_price(self) -> None:
        opp = _opp()
        opp.buy_quote.price = Decimal(0)
        with pytest.raises(ParameterError):
            build_trade_legs(opp, 1_000, "w", Decimal("0.5"))
