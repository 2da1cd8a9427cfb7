"""Core module — config, types, exceptions, logging."""

from arbcore.core.config import Settings, get_settings, load_settings, reset_settings
from arbcore.core.exceptions import (
    ArbError,
    ConfigError,
    LifecycleError,
    ParameterError,
    ProviderError,
    RpcError,
    StateLockError,
    StorageError,
    TransactionError,
)
from arbcore.core.logging import setup_logging
from arbcore.core.types import (
    ArbitrageOpportunity,
    ExecutionResult,
    Instruction,
    PriceQuote,
    TokenPair,
    Venue,
)

__all__ = [
    "ArbError",
    "ArbitrageOpportunity",
    "ConfigError",
    "ExecutionResult",
    "Instruction",
    "LifecycleError",
    "ParameterError",
    "PriceQuote",
    "ProviderError",
    "RpcError",
    "Settings",
    "StateLockError",
    "StorageError",
    "TokenPair",
    "TransactionError",
    "Venue",
    "get_settings",
    "load_settings",
    "reset_settings",
    "setup_logging",
]
