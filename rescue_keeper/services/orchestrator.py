"""Per-cycle rescue orchestration — one state machine, run for every user."""
from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Sequence

from ..chains import ChainInfo, select_stablecoin
from ..interfaces.notifier import Notifier
from ..interfaces.policy_store import PolicyStore
from ..interfaces.transaction_submitter import CooldownReader, TransactionSubmitter
from ..models import (
    CycleResult,
    ExecutionFailure,
    MonitoredUser,
    Quote,
    QuoteRequest,
    RescuePolicy,
    SkipReason,
    SubmitResult,
    SupplyDecision,
    UserOutcome,
    VerifiedStablecoin,
)
from ..policy import is_chain_allowed, resolve_policy, validate_policy
from ..supply import compute_required_supply, is_valid_supply_amount
from ..units import format_health_factor, format_usd, token_units_to_usd, usd_to_token_units
from .health_monitor import HealthMonitor, classify_risk, needs_rescue
from .quote_validator import QuoteValidator

logger = logging.getLogger(__name__)


class TickOrchestrator:
    """Runs the rescue decision pipeline for each monitored user.

    Users are processed sequentially and in isolation: an exception raised
    while handling one user is recorded against that user and the cycle moves
    on to the next.
    """

    def __init__(
        self,
        chain: ChainInfo,
        users: Sequence[MonitoredUser],
        policy_store: PolicyStore,
        health_monitor: HealthMonitor,
        quote_validator: QuoteValidator,
        submitter: TransactionSubmitter,
        executor_address: str,
        cooldown_reader: CooldownReader | None = None,
        notifiers: Sequence[Notifier] = (),
        call_timeout: float = 15.0,
        force_enable: bool = False,
    ) -> None:
        self._chain = chain
        self._users = tuple(users)
        self._policy_store = policy_store
        self._health = health_monitor
        self._quotes = quote_validator
        self._submitter = submitter
        self._executor_address = executor_address
        self._cooldown_reader = cooldown_reader
        self._notifiers = list(notifiers)
        self._call_timeout = call_timeout
        self._force_enable = force_enable

    @property
    def users(self) -> tuple[MonitoredUser, ...]:
        return self._users

    # ------------------------------------------------------------------
    # Cycle
    # ------------------------------------------------------------------

    async def run_tick(self) -> CycleResult:
        """Process every monitored user once."""
        result = CycleResult()

        if not self._users:
            logger.warning("No users configured to monitor — tick is a no-op")
            return result

        logger.info(
            "Starting cycle — users=%d chain=%s", len(self._users), self._chain.name
        )

        for user in self._users:
            try:
                outcome = await self._process_user(user)
            except Exception as e:
                logger.exception("Error processing user %s: %s", user.short_address, e)
                outcome = UserOutcome.failed(str(e) or type(e).__name__)
            result.record(user, outcome)

        logger.info(
            "Cycle complete — processed=%d skipped=%d attempted=%d succeeded=%d errors=%d",
            result.processed,
            result.skipped,
            result.attempted,
            result.succeeded,
            len(result.errors_by_user),
        )
        counts = result.skip_reason_counts()
        if counts:
            logger.debug(
                "Skip reasons — %s",
                ", ".join(f"{reason.value}={n}" for reason, n in sorted(counts.items())),
            )
        if result.attempted or result.errors_by_user:
            await self._send_log(self._cycle_summary(result))
        return result

    # ------------------------------------------------------------------
    # Per-user state machine
    # ------------------------------------------------------------------

    async def _process_user(self, user: MonitoredUser) -> UserOutcome:
        who = user.short_address
        chain_id = self._chain.chain_id

        policy = await self._read_policy(user)

        if not policy.enabled:
            logger.info("Rescue not enabled by user, skipping — user=%s ens=%s", who, user.ens_name)
            return self._skip(user, SkipReason.RESCUE_NOT_ENABLED)

        violations = validate_policy(policy)
        if violations:
            logger.warning(
                "Policy validation failed, skipping — user=%s errors=%s", who, "; ".join(violations)
            )
            return self._skip(user, SkipReason.POLICY_VALIDATION_FAILED)

        if not is_chain_allowed(chain_id, policy):
            logger.info(
                "Chain %d not allowed by policy, skipping — user=%s allowed=%s",
                chain_id, who, list(policy.allowed_chains),
            )
            return self._skip(user, SkipReason.CHAIN_NOT_ALLOWED)

        await self._check_cooldown(user, policy)

        position = await self._health.read_position(self._chain.aave_pool, user.address)
        if position is None:
            logger.error("Position unavailable, skipping — user=%s", who)
            return self._skip(user, SkipReason.POSITION_UNAVAILABLE)

        logger.info(
            "User health — user=%s hf=%s collateral=$%.2f debt=$%.2f risk=%s",
            who,
            format_health_factor(position.health_factor),
            position.total_collateral_usd,
            position.total_debt_usd,
            classify_risk(position.health_factor).value,
        )

        if not needs_rescue(position, policy.min_health_factor):
            return self._skip(user, SkipReason.POSITION_HEALTHY)

        decision = compute_required_supply(position, policy)
        if decision.amount_usd <= 0:
            logger.debug("No supply needed — user=%s reason=%s", who, decision.reason.value)
            return self._skip(user, SkipReason.NO_SUPPLY_NEEDED)

        if not decision.will_restore_health:
            logger.warning(
                "Rescue rejected: capped supply would not restore health — user=%s hf=%s "
                "expectedHF=%s minHF=%.2f amountUSD=%.2f maxAmountUSD=%.2f",
                who,
                format_health_factor(position.health_factor),
                format_health_factor(decision.expected_health_factor),
                policy.min_health_factor,
                decision.amount_usd,
                policy.max_amount_usd,
            )
            await self._notify_rejected(user, decision, policy)
            return self._skip(user, SkipReason.INSUFFICIENT_CAP_FOR_SAFETY)

        logger.info(
            "Supply approved — user=%s amountUSD=%.2f expectedHF=%s reason=%s",
            who,
            decision.amount_usd,
            format_health_factor(decision.expected_health_factor),
            decision.reason.value,
        )

        token = select_stablecoin(policy, chain_id)
        if token is None:
            logger.error(
                "No allowed stablecoin on chain %d — user=%s tokens=%s",
                chain_id, who, list(policy.allowed_tokens),
            )
            return self._skip(user, SkipReason.NO_VALID_STABLECOIN)

        amount = usd_to_token_units(decision.amount_usd, token)
        if not is_valid_supply_amount(token_units_to_usd(amount, token), policy):
            logger.warning(
                "Token amount rounds outside the policy range — user=%s amountUSD=%.6f units=%d",
                who, decision.amount_usd, amount,
            )
            return self._skip(user, SkipReason.ZERO_TOKEN_AMOUNT)

        request = QuoteRequest(
            from_chain=chain_id,
            to_chain=chain_id,
            from_token=token.address,
            to_token=token.address,
            from_amount=amount,
            from_address=self._executor_address,
            beneficiary=user.address,
            pool_address=self._chain.aave_pool,
        )
        quote = await self._quotes.get_execution_quote(request)
        if quote is None:
            return self._skip(user, SkipReason.QUOTE_FAILED)

        if not self._quotes.is_trusted_target(chain_id, quote.target):
            logger.error(
                "SECURITY: quote target not in trusted allow-list, aborting — chain=%d "
                "target=%s trusted=%s",
                chain_id,
                quote.target,
                sorted(self._quotes.trusted_targets(chain_id)),
            )
            return self._skip(user, SkipReason.QUOTE_TARGET_INVALID)

        logger.info(
            "Executing rescue — user=%s token=%s amount=%d amountUSD=%.2f",
            who, token.symbol, amount, decision.amount_usd,
        )
        submit_result = await self._submit(user, token, amount, quote)
        outcome = UserOutcome.attempted(decision.amount_usd, submit_result)

        if submit_result.success:
            logger.info(
                "Rescue succeeded — user=%s tx=%s amountUSD=%.2f",
                who, submit_result.tx_id, decision.amount_usd,
            )
        else:
            logger.error(
                "Rescue failed — user=%s failure=%s error=%s",
                who, submit_result.failure.value, submit_result.error,
            )
        await self._notify_attempt(user, decision, token.symbol, submit_result)
        return outcome

    # ------------------------------------------------------------------
    # Steps with external I/O
    # ------------------------------------------------------------------

    async def _read_policy(self, user: MonitoredUser) -> RescuePolicy:
        raw: dict[str, str] | None = None
        if user.ens_name:
            try:
                raw = await asyncio.wait_for(
                    self._policy_store.read_raw(user.ens_name), self._call_timeout
                )
            except asyncio.TimeoutError:
                logger.error("Policy read timed out — ens=%s", user.ens_name)
            except Exception as e:
                logger.error("Policy read failed — ens=%s error=%s", user.ens_name, e)

        if not raw:
            logger.info(
                "No policy record for %s — using default policy", user.ens_name or user.short_address
            )
        return resolve_policy(raw, force_enable=self._force_enable)

    async def _check_cooldown(self, user: MonitoredUser, policy: RescuePolicy) -> None:
        """Informational only: the executor contract enforces the cooldown."""
        if self._cooldown_reader is None:
            return
        try:
            last = int(
                await asyncio.wait_for(
                    self._cooldown_reader.last_rescue_time(user.address), self._call_timeout
                )
            )
        except Exception as e:
            logger.warning(
                "Cooldown check failed, continuing — user=%s error=%s",
                user.short_address,
                e or type(e).__name__,
            )
            return

        remaining = last + policy.cooldown_seconds - int(time.time())
        if last and remaining > 0:
            logger.info(
                "Cooldown likely active (contract decides), continuing — user=%s remaining=%ds",
                user.short_address,
                remaining,
            )

    async def _submit(
        self,
        user: MonitoredUser,
        token: VerifiedStablecoin,
        amount: int,
        quote: Quote,
    ) -> SubmitResult:
        try:
            return await self._submitter.submit(user.address, token, amount, quote)
        except Exception as e:
            logger.exception("Submitter raised for user %s", user.short_address)
            return SubmitResult(
                success=False, error=str(e) or type(e).__name__, failure=ExecutionFailure.UNKNOWN
            )

    def _skip(self, user: MonitoredUser, reason: SkipReason) -> UserOutcome:
        logger.debug("User skipped — user=%s reason=%s", user.short_address, reason.value)
        return UserOutcome.skipped(reason)

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    @staticmethod
    def _now_str() -> str:
        return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")

    def _user_line(self, user: MonitoredUser) -> str:
        name = user.label or user.ens_name or user.short_address
        return f"{name} · {self._chain.name}"

    async def _send_alert(self, message: str, subject: str = "") -> None:
        for notifier in self._notifiers:
            try:
                await notifier.send_alert(message, subject=subject)
            except Exception as e:
                logger.error("Notifier send_alert failed: %s", e)

    async def _send_log(self, message: str) -> None:
        for notifier in self._notifiers:
            try:
                await notifier.send_log(message)
            except Exception as e:
                logger.error("Notifier send_log failed: %s", e)

    def _cycle_summary(self, result: CycleResult) -> str:
        lines = [
            f"Rescue cycle · {self._chain.name}",
            f"Processed: {result.processed}  Skipped: {result.skipped}",
            f"Attempted: {result.attempted}  Succeeded: {result.succeeded}",
        ]
        for address, error in result.errors_by_user.items():
            lines.append(f"Error {address[:10]}...: {error}")
        lines.append(f"{self._now_str()} UTC")
        return "\n".join(lines)

    async def _notify_attempt(
        self,
        user: MonitoredUser,
        decision: SupplyDecision,
        symbol: str,
        result: SubmitResult,
    ) -> None:
        if not self._notifiers:
            return
        if result.success:
            tx_link = f"{self._chain.explorer}/tx/{result.tx_id}" if result.tx_id else "—"
            message = (
                f"✅ Rescue executed\n"
                f"\n"
                f"{self._user_line(user)}\n"
                f"Supplied: {format_usd(decision.amount_usd)} {symbol}\n"
                f"Expected HF: {format_health_factor(decision.expected_health_factor)}\n"
                f"Tx: {tx_link}\n"
                f"\n"
                f"{self._now_str()} UTC"
            )
            await self._send_alert(message, subject="✅ Rescue executed")
        else:
            message = (
                f"🚨 Rescue FAILED — {result.failure.value}\n"
                f"\n"
                f"{self._user_line(user)}\n"
                f"Amount: {format_usd(decision.amount_usd)} {symbol}\n"
                f"Error: {result.error or 'unknown'}\n"
                f"\n"
                f"{self._now_str()} UTC"
            )
            await self._send_alert(message, subject="🚨 Rescue failed")

    async def _notify_rejected(
        self, user: MonitoredUser, decision: SupplyDecision, policy: RescuePolicy
    ) -> None:
        if not self._notifiers:
            return
        message = (
            f"⚠️ Rescue refused — spending cap too low\n"
            f"\n"
            f"{self._user_line(user)}\n"
            f"Capped supply: {format_usd(decision.amount_usd)} "
            f"(max {format_usd(policy.max_amount_usd)})\n"
            f"Expected HF: {format_health_factor(decision.expected_health_factor)} "
            f"< min {policy.min_health_factor:.2f}\n"
            f"\n"
            f"Raise rescue.maxAmountUSD or add collateral manually.\n"
            f"\n"
            f"{self._now_str()} UTC"
        )
        await self._send_alert(message, subject="⚠️ Rescue refused")
