"""Risk management — trading halt on repeated execution failures."""

from arbcore.risk.circuit_breaker import CircuitBreaker

__all__ = [
    "CircuitBreaker",
]
