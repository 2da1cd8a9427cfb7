"""Strategy — spread evaluation, position sizing, and the arbitrage engine."""

from arbcore.strategy.engine import ArbEventCallback, ArbitrageEngine, EngineState
from arbcore.strategy.evaluator import compute_spread, evaluate_opportunity, select_venues
from arbcore.strategy.sizer import PositionSizer

__all__ = [
    "ArbEventCallback",
    "ArbitrageEngine",
    "EngineState",
    "PositionSizer",
    "compute_spread",
    "evaluate_opportunity",
    "select_venues",
]
