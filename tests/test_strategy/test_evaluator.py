"""Tests for spread evaluation."""

from __future__ import annotations

from decimal import Decimal

from arbcore.core.types import PriceQuote, TokenPair, Venue
from arbcore.strategy.evaluator import compute_spread, evaluate_opportunity, select_venues

PAIR = TokenPair(base="SOL", quote="USDC")


def _quote(venue: Venue, price: str, liquidity: int = 1_000_000_000) -> PriceQuote:
    return PriceQuote(
        venue=venue, base=PAIR.base, quote=PAIR.quote,
        price=Decimal(price), liquidity=liquidity,
    )


class TestComputeSpread:
    def test_example(self) -> None:
        assert compute_spread(Decimal("1.00"), Decimal("1.006")) == Decimal("0.6")

    def test_negative_when_inverted(self) -> None:
        assert compute_spread(Decimal("2"), Decimal("1")) == Decimal("-50")

    def test_zero_buy_price(self) -> None:
        assert compute_spread(Decimal(0), Decimal("1")) == Decimal(0)


class TestSelectVenues:
    def test_lowest_buy_highest_sell(self) -> None:
        quotes = [
            _quote(Venue.JUPITER, "1.003"),
            _quote(Venue.RAYDIUM, "1.000"),
            _quote(Venue.ORCA, "1.006"),
        ]
        selected = select_venues(quotes)
        assert selected is not None
        buy, sell = selected
        assert buy.venue == Venue.RAYDIUM
        assert sell.venue == Venue.ORCA

    def test_needs_two_quotes(self) -> None:
        assert select_venues([_quote(Venue.ORCA, "1")]) is None
        assert select_venues([]) is None

    def test_distinct_quotes_on_equal_prices(self) -> None:
        selected = select_venues([_quote(Venue.JUPITER, "1"), _quote(Venue.ORCA, "1")])
        assert selected is not None
        assert selected[0].venue != selected[1].venue


class TestEvaluateOpportunity:
    def test_spread_above_threshold_creates_opportunity(self) -> None:
        quotes = [_quote(Venue.JUPITER, "1.00"), _quote(Venue.ORCA, "1.006")]
        opp = evaluate_opportunity(PAIR, quotes, Decimal("0.5"), 1_000_000, now=42.0)
        assert opp is not None
        assert opp.spread_pct == Decimal("0.6")
        assert opp.buy_quote.venue == Venue.JUPITER
        assert opp.sell_quote.venue == Venue.ORCA
        assert opp.max_trade_size == 1_000_000
        assert opp.estimated_profit == 6_000
        assert opp.detected_at == 42.0

    def test_spread_below_threshold_is_ignored(self) -> None:
        quotes = [_quote(Venue.JUPITER, "1.000"), _quote(Venue.ORCA, "1.003")]
        assert evaluate_opportunity(PAIR, quotes, Decimal("0.5"), 1_000_000) is None

    def test_spread_equal_to_threshold_qualifies(self) -> None:
        quotes = [_quote(Venue.JUPITER, "1.000"), _quote(Venue.ORCA, "1.005")]
        assert evaluate_opportunity(PAIR, quotes, Decimal("0.5"), 1_000_000) is not None

    def test_trade_size_is_min_liquidity(self) -> None:
        quotes = [
            _quote(Venue.JUPITER, "1.00", liquidity=300_000),
            _quote(Venue.ORCA, "1.01", liquidity=800_000),
        ]
        opp = evaluate_opportunity(PAIR, quotes, Decimal("0.5"), 1_000_000)
        assert opp is not None
        assert opp.max_trade_size == 300_000
        assert opp.estimated_profit == 3_000

    def test_estimated_profit_floored(self) -> None:
        quotes = [_quote(Venue.JUPITER, "1.00"), _quote(Venue.ORCA, "1.007")]
        opp = evaluate_opportunity(PAIR, quotes, Decimal("0.5"), 999)
        assert opp is not None
        # 999 * 0.7 / 100 = 6.993
        assert opp.estimated_profit == 6

    def test_no_liquidity_no_opportunity(self) -> None:
        quotes = [
            _quote(Venue.JUPITER, "1.00", liquidity=0),
            _quote(Venue.ORCA, "1.01"),
        ]
        assert evaluate_opportunity(PAIR, quotes, Decimal("0.5"), 1_000_000) is None
