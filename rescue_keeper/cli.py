"""Command-line interface for the rescue keeper."""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from .chains import build_trusted_targets, get_chain
from .config import AppConfig, ChainConfig, load_config
from .execution import RescueExecutorClient
from .interfaces.notifier import Notifier
from .interfaces.policy_store import PolicyStore
from .logging_setup import configure_logging
from .models import CycleResult, MonitoredUser
from .notifications import TelegramNotifier
from .policy import resolve_policy, validate_policy
from .protocols.aave import AavePositionReader
from .routing import LiFiQuoter
from .rpc import EthRpcClient
from .services import HealthMonitor, QuoteValidator, TickOrchestrator, run_forever
from .stores import EnsPolicyStore, FilePolicyStore

logger = logging.getLogger(__name__)

ENS_CHAIN_ID = 1

EXIT_CONFIG_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse CLI parser."""
    parser = argparse.ArgumentParser(
        prog="rescue-keeper",
        description="Automated Aave position rescue keeper",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yaml (default: config.yaml in project root)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )

    sub = parser.add_subparsers(dest="command")

    sub.add_parser("tick", help="Run a single rescue cycle")

    run_parser = sub.add_parser("run", help="Run rescue cycles forever")
    run_parser.add_argument(
        "interval",
        nargs="?",
        type=float,
        default=None,
        help="Poll interval in seconds (overrides config)",
    )

    policy_parser = sub.add_parser("policy", help="Show the resolved policy for a name")
    policy_parser.add_argument("name", help="ENS name (or policy file key)")

    return parser


# ---------------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------------


def build_policy_store(config: AppConfig) -> PolicyStore:
    store_cfg = config.policy_store
    if store_cfg.provider == "file":
        return FilePolicyStore(store_cfg.path)

    endpoints = store_cfg.ens_rpc_endpoints
    if not endpoints:
        # ENS lives on mainnet; reuse its configured endpoints when present.
        fallback = config.chains.get(ENS_CHAIN_ID) or config.chains[config.keeper.chain_id]
        endpoints = fallback.rpc_endpoints
    client = EthRpcClient(ChainConfig(rpc_endpoints=endpoints, rpc_timeout=store_cfg.rpc_timeout))
    return EnsPolicyStore(client)


def build_notifiers(config: AppConfig) -> list[Notifier]:
    notifiers: list[Notifier] = []
    if config.notifications.telegram.enabled:
        notifiers.append(TelegramNotifier(config.notifications.telegram))
    return notifiers


def build_orchestrator(config: AppConfig) -> TickOrchestrator:
    """Wire the production adapters into a ``TickOrchestrator``."""
    keeper = config.keeper
    chain = get_chain(keeper.chain_id)
    client = EthRpcClient(config.chains[keeper.chain_id])

    executor = RescueExecutorClient(
        client,
        executor_address=keeper.executor_address,
        keeper_address=keeper.keeper_address,
        receipt_timeout=keeper.receipt_timeout_seconds,
    )
    users = [
        MonitoredUser(address=u.address, ens_name=u.ens_name, label=u.label)
        for u in config.users
    ]

    return TickOrchestrator(
        chain=chain,
        users=users,
        policy_store=build_policy_store(config),
        health_monitor=HealthMonitor(AavePositionReader(client), timeout=keeper.call_timeout_seconds),
        quote_validator=QuoteValidator(
            LiFiQuoter(config.lifi),
            build_trusted_targets(config.trusted_targets),
            timeout=keeper.call_timeout_seconds,
        ),
        submitter=executor,
        executor_address=keeper.executor_address,
        cooldown_reader=executor,
        notifiers=build_notifiers(config),
        call_timeout=keeper.call_timeout_seconds,
        force_enable=keeper.force_enable,
    )


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def format_cycle_result(result: CycleResult) -> str:
    lines = [
        f"processed={result.processed} skipped={result.skipped} "
        f"attempted={result.attempted} succeeded={result.succeeded} "
        f"errors={len(result.errors_by_user)}"
    ]
    for address, reason in result.skip_reasons.items():
        lines.append(f"  skip  {address}: {reason.value}")
    for address, error in result.errors_by_user.items():
        lines.append(f"  error {address}: {error}")
    return "\n".join(lines)


async def _show_policy(config: AppConfig, name: str) -> None:
    store = build_policy_store(config)
    raw = await store.read_raw(name)
    policy = resolve_policy(raw, force_enable=config.keeper.force_enable)

    print(f"Policy for {name} ({'record found' if raw else 'no record, defaults'}):")
    print(f"  enabled:          {policy.enabled}")
    print(f"  minHF:            {policy.min_health_factor}")
    print(f"  targetHF:         {policy.target_health_factor}")
    print(f"  maxAmountUSD:     {policy.max_amount_usd}")
    print(f"  cooldownSeconds:  {policy.cooldown_seconds}")
    print(f"  allowedTokens:    {', '.join(policy.allowed_tokens)}")
    print(f"  allowedChains:    {', '.join(str(c) for c in policy.allowed_chains)}")
    violations = validate_policy(policy)
    if violations:
        print("  violations:")
        for violation in violations:
            print(f"    - {violation}")


async def _run(args: argparse.Namespace) -> None:
    """Execute the selected command."""
    configure_logging(args.log_level)
    config = load_config(args.config)

    if args.command == "policy":
        await _show_policy(config, args.name)
        return

    orchestrator = build_orchestrator(config)

    if args.command == "tick":
        result = await orchestrator.run_tick()
        print(format_cycle_result(result))
    elif args.command == "run":
        interval = args.interval or config.keeper.poll_interval_seconds
        await run_forever(interval, orchestrator.run_tick)
    else:
        build_parser().print_help()
        sys.exit(1)


def main() -> None:
    """Entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        asyncio.run(_run(args))
    except (FileNotFoundError, ValueError) as e:
        logger.error("Configuration error: %s", e)
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(EXIT_CONFIG_ERROR)


if __name__ == "__main__":
    main()
