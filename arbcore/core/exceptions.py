"""Exception taxonomy shared by every arbcore component."""

from __future__ import annotations


class ArbError(Exception):
    """Base exception for all arbcore errors."""


class ParameterError(ArbError):
    """Invalid or oversized request (e.g. loan above provider maximum)."""


class ProviderError(ArbError):
    """A venue or loan program rejected the request."""


class TransactionError(ArbError):
    """Atomic submission failed or was reverted."""


class RpcError(ArbError):
    """Network failure or timeout talking to a chain node or venue API."""


class ConfigError(ArbError):
    """Configuration is inconsistent (e.g. split percentages not summing to 100)."""


class StateLockError(ArbError):
    """Exclusive access to shared state could not be acquired in time."""


class LifecycleError(ArbError):
    """Engine lifecycle command is not valid in the current state."""


class StorageError(ArbError):
    """Persisted state could not be read or written."""
