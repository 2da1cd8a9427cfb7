"""Spread evaluation — turns a set of venue quotes into an opportunity."""

from __future__ import annotations

import time
from decimal import ROUND_DOWN, Decimal

import structlog

from arbcore.core.types import ArbitrageOpportunity, PriceQuote, TokenPair

logger = structlog.stdlib.get_logger()


def compute_spread(buy_price: Decimal, sell_price: Decimal) -> Decimal:
    """Percentage gain of selling at ``sell_price`` what was bought at ``buy_price``."""
    if buy_price <= 0:
        return Decimal(0)
    return (sell_price - buy_price) / buy_price * Decimal(100)


def select_venues(quotes: list[PriceQuote]) -> tuple[PriceQuote, PriceQuote] | None:
    """Cheapest quote to buy from and richest quote to sell into.

    Needs at least two quotes; ties keep the earlier quote as the buy side.
    """
    usable = [q for q in quotes if q.price > 0]
    if len(usable) < 2:
        return None
    ordered = sorted(usable, key=lambda q: q.price)
    return ordered[0], ordered[-1]


def evaluate_opportunity(
    pair: TokenPair,
    quotes: list[PriceQuote],
    min_profit_threshold: Decimal,
    max_position_size: int,
    now: float | None = None,
) -> ArbitrageOpportunity | None:
    """Build an opportunity when the best spread meets ``min_profit_threshold``.

    ``max_trade_size`` is the smaller side's liquidity, capped at
    ``max_position_size``. ``estimated_profit`` is that size times the
    spread, floored. Returns None when there is no tradable spread.
    """
    selected = select_venues(quotes)
    if selected is None:
        return None
    buy, sell = selected

    spread = compute_spread(buy.price, sell.price)
    if spread < min_profit_threshold:
        logger.debug(
            "spread_below_threshold",
            pair=pair.key,
            spread_pct=spread,
            threshold=min_profit_threshold,
        )
        return None

    max_trade_size = min(buy.liquidity, sell.liquidity, max_position_size)
    if max_trade_size <= 0:
        logger.debug("no_tradable_liquidity", pair=pair.key)
        return None

    raw_profit = Decimal(max_trade_size) * spread / Decimal(100)
    return ArbitrageOpportunity(
        pair=pair,
        buy_quote=buy,
        sell_quote=sell,
        spread_pct=spread,
        estimated_profit=int(raw_profit.to_integral_value(rounding=ROUND_DOWN)),
        max_trade_size=max_trade_size,
        detected_at=now if now is not None else time.time(),
    )
