"""Data models — frozen (immutable) except the per-cycle accumulators."""
from __future__ import annotations

import enum
from collections import Counter
from dataclasses import dataclass, field

from .constants import is_stablecoin


class SupplyReason(str, enum.Enum):
    NO_DEBT = "no_debt"
    HEALTHY = "healthy"
    SUPPLY_NEEDED = "supply_needed"
    CAPPED_BY_POLICY = "capped_by_policy"
    INSUFFICIENT_CAP = "insufficient_cap"


class SkipReason(str, enum.Enum):
    """Why a user was not rescued this cycle (expected control flow)."""

    RESCUE_NOT_ENABLED = "rescue_not_enabled"
    POLICY_VALIDATION_FAILED = "policy_validation_failed"
    CHAIN_NOT_ALLOWED = "chain_not_allowed"
    POSITION_UNAVAILABLE = "position_unavailable"
    POSITION_HEALTHY = "position_healthy"
    NO_SUPPLY_NEEDED = "no_supply_needed"
    INSUFFICIENT_CAP_FOR_SAFETY = "insufficient_cap_for_safety"
    NO_VALID_STABLECOIN = "no_valid_stablecoin"
    ZERO_TOKEN_AMOUNT = "zero_token_amount"
    QUOTE_FAILED = "quote_failed"
    QUOTE_TARGET_INVALID = "quote_target_invalid"


class ExecutionFailure(str, enum.Enum):
    """Classified reason for a failed submission."""

    NONE = "none"
    APPROVAL_MISSING = "approval_missing"
    COOLDOWN_ACTIVE = "cooldown_active"
    TARGET_INVALID = "target_invalid"
    UNAUTHORIZED_SIGNER = "unauthorized_signer"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    REVERTED = "reverted"
    NONCE_ERROR = "nonce_error"
    TIMEOUT = "timeout"
    INVALID_REQUEST = "invalid_request"
    UNKNOWN = "unknown"


class RiskLevel(str, enum.Enum):
    CRITICAL = "CRITICAL"
    WARNING = "WARNING"
    HEALTHY = "HEALTHY"


class OutcomeStatus(str, enum.Enum):
    SKIPPED = "skipped"
    ATTEMPTED = "attempted"
    ERROR = "error"


@dataclass(frozen=True)
class RescuePolicy:
    """A user's rescue authorization, always complete and within bounds."""

    enabled: bool
    min_health_factor: float
    target_health_factor: float
    max_amount_usd: float
    cooldown_seconds: int
    allowed_tokens: tuple[str, ...]
    allowed_chains: tuple[int, ...]


@dataclass(frozen=True)
class RawAccountData:
    """Protocol-native values as returned by Aave ``getUserAccountData``."""

    total_collateral_base: int
    total_debt_base: int
    available_borrows_base: int
    current_liquidation_threshold: int
    ltv: int
    health_factor: int


@dataclass(frozen=True)
class PositionSnapshot:
    """Point-in-time read of one user's lending position."""

    health_factor: float
    total_collateral_usd: float
    total_debt_usd: float
    liquidation_threshold: float


@dataclass(frozen=True)
class SupplyDecision:
    amount_usd: float
    expected_health_factor: float
    will_restore_health: bool
    reason: SupplyReason


@dataclass(frozen=True)
class MonitoredUser:
    address: str
    ens_name: str = ""
    label: str = ""

    @property
    def short_address(self) -> str:
        if len(self.address) > 12:
            return f"{self.address[:10]}..."
        return self.address


@dataclass(frozen=True)
class VerifiedStablecoin:
    """A token that is known to be a $1 stablecoin on a specific chain.

    This is the only token type accepted by USD to token-unit conversion, so
    a non-stablecoin can never reach the fixed-price path.
    """

    symbol: str
    address: str
    decimals: int
    chain_id: int

    def __post_init__(self) -> None:
        if not is_stablecoin(self.symbol):
            raise ValueError(f"{self.symbol!r} is not an allow-listed stablecoin")
        if self.decimals < 0:
            raise ValueError(f"Invalid decimals for {self.symbol}: {self.decimals}")


@dataclass(frozen=True)
class QuoteRequest:
    from_chain: int
    to_chain: int
    from_token: str
    to_token: str
    from_amount: int
    from_address: str
    beneficiary: str
    pool_address: str


@dataclass(frozen=True)
class Quote:
    """Execution quote returned by a routing service (untrusted input)."""

    target: str
    call_data: str
    value: int = 0
    estimated_output: str = ""


@dataclass(frozen=True)
class SubmitResult:
    success: bool
    tx_id: str | None = None
    error: str | None = None
    failure: ExecutionFailure = ExecutionFailure.NONE


@dataclass(frozen=True)
class UserOutcome:
    """Result of processing one user in one cycle."""

    status: OutcomeStatus
    skip_reason: SkipReason | None = None
    success: bool = False
    amount_usd: float = 0.0
    tx_id: str | None = None
    error: str | None = None

    @classmethod
    def skipped(cls, reason: SkipReason) -> UserOutcome:
        return cls(status=OutcomeStatus.SKIPPED, skip_reason=reason)

    @classmethod
    def attempted(cls, amount_usd: float, result: SubmitResult) -> UserOutcome:
        return cls(
            status=OutcomeStatus.ATTEMPTED,
            success=result.success,
            amount_usd=amount_usd,
            tx_id=result.tx_id,
            error=result.error,
        )

    @classmethod
    def failed(cls, error: str) -> UserOutcome:
        return cls(status=OutcomeStatus.ERROR, error=error)


@dataclass
class CycleResult:
    """Aggregate of one tick across all monitored users."""

    processed: int = 0
    skipped: int = 0
    attempted: int = 0
    succeeded: int = 0
    errors_by_user: dict[str, str] = field(default_factory=dict)
    skip_reasons: dict[str, SkipReason] = field(default_factory=dict)

    def record(self, user: MonitoredUser, outcome: UserOutcome) -> None:
        if outcome.status is OutcomeStatus.SKIPPED and outcome.skip_reason is None:
            raise ValueError(f"Skipped outcome for {user.address} has no skip reason")
        self.processed += 1
        if outcome.status is OutcomeStatus.SKIPPED:
            self.skipped += 1
            self.skip_reasons[user.address] = outcome.skip_reason
        elif outcome.status is OutcomeStatus.ATTEMPTED:
            self.attempted += 1
            if outcome.success:
                self.succeeded += 1
            else:
                self.errors_by_user[user.address] = outcome.error or "Unknown error"
        else:
            self.errors_by_user[user.address] = outcome.error or "Unknown error"

    def skip_reason_counts(self) -> dict[SkipReason, int]:
        return dict(Counter(self.skip_reasons.values()))
