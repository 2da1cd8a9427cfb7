"""arbcore — cross-venue DEX arbitrage execution core."""

__version__ = "0.1.0"
