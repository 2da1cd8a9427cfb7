"""Venues — registry, swap legs, collaborator contracts, HTTP quote oracle."""

from arbcore.venues.base import (
    PriceOracleAdapter,
    SettlementService,
    SignerService,
    WalletDirectory,
)
from arbcore.venues.http_oracle import HttpPriceOracle
from arbcore.venues.rate_limiter import TokenBucket, VenueRateLimiter
from arbcore.venues.swaps import (
    VENUE_SPECS,
    VenueSpec,
    build_swap,
    build_trade_legs,
    min_amount_out,
)

__all__ = [
    "VENUE_SPECS",
    "HttpPriceOracle",
    "PriceOracleAdapter",
    "SettlementService",
    "SignerService",
    "TokenBucket",
    "VenueRateLimiter",
    "VenueSpec",
    "WalletDirectory",
    "build_swap",
    "build_trade_legs",
    "min_amount_out",
]
