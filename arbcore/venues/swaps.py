"""Closed venue registry and swap-leg assembly."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_DOWN, Decimal

from arbcore.core.exceptions import ParameterError
from arbcore.core.types import (
    ArbitrageOpportunity,
    Instruction,
    SwapParams,
    Venue,
)


@dataclass(frozen=True)
class VenueSpec:
    """Static description of a venue."""

    venue: Venue
    program_id: str
    api_url: str
    discriminator: int


VENUE_SPECS: dict[Venue, VenueSpec] = {
    Venue.JUPITER: VenueSpec(
        venue=Venue.JUPITER,
        program_id="JUP6LkbZbjS1jKKwapdHNy74zcZ3tLUZoi5QNyVTaV4",
        api_url="https://quote-api.jup.ag/v6",
        discriminator=0,
    ),
    Venue.RAYDIUM: VenueSpec(
        venue=Venue.RAYDIUM,
        program_id="675kPX9MHTjS2zt1qfr1NYHuzeLXfQM9H24wFSUt1Mp8",
        api_url="https://api.raydium.io",
        discriminator=1,
    ),
    Venue.ORCA: VenueSpec(
        venue=Venue.ORCA,
        program_id="9W959DqEETiGZocYWCQPaJ6sBmUzgfxXfqGeTEdp3aQP",
        api_url="https://api.orca.so",
        discriminator=2,
    ),
}


def min_amount_out(amount_in: int, price: Decimal, slippage_pct: Decimal) -> int:
    """Smallest acceptable output for ``amount_in`` at ``price`` minus slippage."""
    expected = Decimal(amount_in) * price
    tolerated = expected * (Decimal(100) - slippage_pct) / Decimal(100)
    return int(tolerated.to_integral_value(rounding=ROUND_DOWN))


def build_swap(venue: Venue, params: SwapParams) -> Instruction:
    """Assemble the swap instruction for ``venue``."""
    if params.amount_in <= 0:
        raise ParameterError(f"Swap amount must be positive, got {params.amount_in}")
    spec = VENUE_SPECS[venue]
    return Instruction(
        program_id=spec.program_id,
        kind="swap",
        source=venue.value,
        accounts=[
            params.source_wallet,
            params.destination_wallet,
            params.source_token,
            params.destination_token,
        ],
        signers=[params.source_wallet],
        params={
            "discriminator": spec.discriminator,
            "amount_in": params.amount_in,
            "min_amount_out": params.min_amount_out,
            "slippage_bps": int(params.slippage_pct * 100),
        },
    )


def build_trade_legs(
    opportunity: ArbitrageOpportunity,
    amount: int,
    wallet: str,
    slippage_pct: Decimal,
) -> list[Instruction]:
    """Buy base with ``amount`` quote on the cheap venue, sell it on the rich one.

    Prices are quote-per-base, so the buy leg yields ``amount / buy_price``
    base tokens and the sell leg converts them back at ``sell_price``.
    """
    pair = opportunity.pair
    buy_price = opportunity.buy_quote.price
    sell_price = opportunity.sell_quote.price
    if buy_price <= 0 or sell_price <= 0:
        raise ParameterError("Cannot build trade legs from a non-positive price")

    base_out = min_amount_out(amount, Decimal(1) / buy_price, slippage_pct)
    buy = build_swap(
        opportunity.buy_quote.venue,
        SwapParams(
            amount_in=amount,
            min_amount_out=base_out,
            source_token=pair.quote,
            destination_token=pair.base,
            source_wallet=wallet,
            destination_wallet=wallet,
            slippage_pct=slippage_pct,
        ),
    )
    sell = build_swap(
        opportunity.sell_quote.venue,
        SwapParams(
            amount_in=base_out,
            min_amount_out=min_amount_out(base_out, sell_price, slippage_pct),
            source_token=pair.base,
            destination_token=pair.quote,
            source_wallet=wallet,
            destination_wallet=wallet,
            slippage_pct=slippage_pct,
        ),
    )
    return [buy, sell]
