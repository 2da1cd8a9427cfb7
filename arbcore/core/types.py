"""Domain types for the arbitrage core. Prices are Decimal, amounts are integer base units."""

from __future__ import annotations

from decimal import Decimal
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

SOL_MINT = "So11111111111111111111111111111111111111112"
USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"


class TokenPair(BaseModel):
    """A (base, quote) token pair used as a lookup key everywhere."""

    model_config = ConfigDict(frozen=True)

    base: str
    quote: str

    @property
    def key(self) -> str:
        return f"{self.base}/{self.quote}"

    @classmethod
    def from_key(cls, key: str) -> TokenPair:
        base, _, quote = key.partition("/")
        return cls(base=base, quote=quote)

    def __str__(self) -> str:
        return self.key


# ── Venue Types ─────────────────────────────────────────────────


class Venue(StrEnum):
    """Trading venues quoting prices for a pair."""

    JUPITER = "JUPITER"
    RAYDIUM = "RAYDIUM"
    ORCA = "ORCA"


class PriceQuote(BaseModel):
    """Price and available liquidity for a pair at one venue."""

    venue: Venue
    base: str
    quote: str
    price: Decimal
    liquidity: int = 0
    timestamp: float = 0.0


class Instruction(BaseModel):
    """An opaque, venue- or provider-tagged instruction in an atomic unit.

    ``kind`` is one of ``swap``, ``borrow`` or ``repay``.
    """

    program_id: str
    kind: str
    source: str = ""
    accounts: list[str] = Field(default_factory=list)
    signers: list[str] = Field(default_factory=list)
    params: dict[str, Any] = Field(default_factory=dict)


class SwapParams(BaseModel):
    """Parameters for one swap leg."""

    amount_in: int
    min_amount_out: int
    source_token: str
    destination_token: str
    source_wallet: str
    destination_wallet: str
    slippage_pct: Decimal = Decimal("0.5")


# ── Loan Types ──────────────────────────────────────────────────


class LoanProvider(StrEnum):
    """Flash-loan providers."""

    SOLEND = "SOLEND"
    FLASH_PROTOCOL = "FLASH_PROTOCOL"
    FLASH_LOAN_MASTERY = "FLASH_LOAN_MASTERY"


class LoanQuote(BaseModel):
    """Fee quote for a flash loan of a given principal."""

    provider: LoanProvider
    program_id: str
    amount: int
    fee: int

    @property
    def repay_amount(self) -> int:
        return self.amount + self.fee


# ── Wallet Types ────────────────────────────────────────────────


class WalletRole(StrEnum):
    """Role a wallet plays in the system."""

    TRADING = "TRADING"
    OPERATIONAL = "OPERATIONAL"
    PROFIT = "PROFIT"
    OWNER = "OWNER"


# ── Engine Types ────────────────────────────────────────────────


class ArbitrageOpportunity(BaseModel):
    """A spread worth trading, consumed immediately by execution."""

    pair: TokenPair
    buy_quote: PriceQuote
    sell_quote: PriceQuote
    spread_pct: Decimal
    estimated_profit: int
    max_trade_size: int
    detected_at: float = 0.0


class ExecutionResult(BaseModel):
    """Outcome of one arbitrage attempt.

    ``actual_profit`` is None when the trade landed but no settlement step
    reported the realized profit.
    """

    opportunity: ArbitrageOpportunity
    success: bool = False
    actual_profit: int | None = None
    profit_confirmed: bool = False
    error: str = ""
    duration_ms: float = 0.0
    tx_reference: str | None = None
    used_loan: bool = False
    loan_fee: int = 0
    trade_size: int = 0


class Settlement(BaseModel):
    """Result reported by a settlement/confirmation step."""

    tx_reference: str
    confirmed: bool = True
    realized_profit: int = 0
    error: str = ""


class EngineStatus(StrEnum):
    """Engine lifecycle state."""

    STOPPED = "STOPPED"
    RUNNING = "RUNNING"
    PAUSED = "PAUSED"
    STOPPING = "STOPPING"


class EngineStatistics(BaseModel):
    """Best-effort snapshot of engine activity."""

    status: EngineStatus = EngineStatus.STOPPED
    opportunities_detected: int = 0
    executed: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    active_operations: int = 0
    total_profit: int = 0
    avg_profit_per_trade: float = 0.0
    avg_execution_time_ms: float = 0.0


class ArbEventType(StrEnum):
    """Type of arbitrage engine event."""

    OPPORTUNITY_DETECTED = "OPPORTUNITY_DETECTED"
    TRADE_EXECUTED = "TRADE_EXECUTED"
    TRADE_FAILED = "TRADE_FAILED"
    TRADE_SKIPPED = "TRADE_SKIPPED"
    CIRCUIT_BREAKER_TRIPPED = "CIRCUIT_BREAKER_TRIPPED"
    ENGINE_STARTED = "ENGINE_STARTED"
    ENGINE_STOPPED = "ENGINE_STOPPED"
    ENGINE_PAUSED = "ENGINE_PAUSED"
    ENGINE_RESUMED = "ENGINE_RESUMED"


class ArbEvent(BaseModel):
    """Event emitted by the arbitrage engine."""

    event_type: ArbEventType
    opportunity: ArbitrageOpportunity | None = None
    result: ExecutionResult | None = None
    reason: str = ""
    timestamp: float = 0.0


# ── Sizing Types ────────────────────────────────────────────────


class RiskLevel(StrEnum):
    """Preset risk appetite for position sizing."""

    CONSERVATIVE = "CONSERVATIVE"
    MODERATE = "MODERATE"
    AGGRESSIVE = "AGGRESSIVE"
    CUSTOM = "CUSTOM"


class VolatilityLevel(StrEnum):
    """Market volatility regime."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    EXTREME = "EXTREME"


class MarketCondition(BaseModel):
    """Market regime assessment used to scale position size."""

    volatility: VolatilityLevel = VolatilityLevel.LOW
    liquidity_score: int = Field(default=100, ge=0, le=100)
    trend_direction: int = Field(default=0, ge=-100, le=100)
    timestamp: float = 0.0


class PositionState(BaseModel):
    """Per-pair adaptive position size and its daily baseline."""

    size: int
    baseline_size: int
    baseline_at: float


class TradeRecord(BaseModel):
    """One entry of the bounded trade history."""

    pair: TokenPair
    position_size: int
    profit_amount: int = 0
    profit_pct: float = 0.0
    execution_time_ms: float = 0.0
    success: bool = False
    timestamp: float = 0.0


class PerformanceStatistics(BaseModel):
    """Aggregates over the sizer's trade history."""

    total_trades: int = 0
    successful_trades: int = 0
    success_rate: float = 0.0
    total_profit: int = 0
    avg_profit_pct: float = 0.0
    avg_execution_time_ms: float = 0.0


# ── Accounting Types ────────────────────────────────────────────


class ProfitAccount(BaseModel):
    """Per-token profit ledger entry."""

    token: str
    total_profit: int = 0
    distributed_profit: int = 0
    undistributed_profit: int = 0
    successful_trades: int = 0
    failed_trades: int = 0
    unsettled_trades: int = 0

    @property
    def success_rate(self) -> float:
        trades = self.successful_trades + self.failed_trades
        if trades == 0:
            return 0.0
        return self.successful_trades / trades * 100.0


class TokenDistribution(BaseModel):
    """Split applied to a single token during a distribution."""

    token: str
    distributed: int
    reinvested: int
    withdrawn: int
    reserved: int


class DistributionResult(BaseModel):
    """Totals of one ``distribute_profits`` call across all qualifying tokens."""

    reinvested: int = 0
    withdrawn: int = 0
    reserved: int = 0
    distributed: int = 0
    owner_wallet: str = ""
    per_token: list[TokenDistribution] = Field(default_factory=list)


class ProfitStatistics(BaseModel):
    """Aggregate ledger statistics."""

    total_sol_profit: int = 0
    total_usd_profit: int = 0
    total_successful_trades: int = 0
    total_failed_trades: int = 0
    overall_success_rate: float = 0.0
    token_count: int = 0


# ── Risk Types ──────────────────────────────────────────────────


class BreakerTrigger(StrEnum):
    """What tripped the circuit breaker."""

    CONSECUTIVE_FAILURES = "CONSECUTIVE_FAILURES"
    ERROR_RATE = "ERROR_RATE"
    MANUAL = "MANUAL"


class BreakerState(BaseModel):
    """Current circuit breaker state."""

    tripped: bool = False
    trigger: BreakerTrigger | None = None
    tripped_at: float | None = None
    reason: str = ""
