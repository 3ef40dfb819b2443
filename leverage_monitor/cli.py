"""Command-line interface for the leverage position monitor."""
from __future__ import annotations

import argparse
import asyncio
import sys

from .calculator import assess_leverage_risk, compute_leverage_params, compute_net_apy
from .config import ProtocolConfig, load_config
from .errors import InvalidInput
from .logging_setup import configure_logging
from .services import MonitorService, build_service

DEFAULT_SIMULATION_AMOUNT = 174.2968


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse CLI parser."""
    parser = argparse.ArgumentParser(
        prog="leverage-monitor",
        description="Leveraged lending position risk monitor",
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

    sub.add_parser("check", help="Run a single health check and print the report")
    sub.add_parser("report", help="Run a health check and send the report")

    monitor_parser = sub.add_parser("monitor", help="Continuous monitoring loop")
    monitor_parser.add_argument(
        "interval",
        nargs="?",
        type=int,
        default=None,
        help="Check interval in minutes (overrides config)",
    )

    simulate_parser = sub.add_parser("simulate", help="Project a leveraged position")
    simulate_parser.add_argument(
        "amount",
        nargs="?",
        type=float,
        default=DEFAULT_SIMULATION_AMOUNT,
        help=f"Collateral amount (default: {DEFAULT_SIMULATION_AMOUNT})",
    )
    simulate_parser.add_argument("--leverage", type=float, default=2.0)
    simulate_parser.add_argument("--buffer", type=float, default=0.20)
    simulate_parser.add_argument(
        "--yield-apy",
        type=float,
        default=0.08,
        help="APY earned on borrowed funds (default: 0.08)",
    )

    return parser


def simulate(args: argparse.Namespace, protocol: ProtocolConfig) -> str:
    """Render a leverage projection for ``args.amount`` of collateral."""
    params = compute_leverage_params(
        args.amount,
        args.leverage,
        args.buffer,
        protocol.ltv,
        protocol.liquidation_threshold,
    )
    apy = compute_net_apy(
        args.amount,
        params.safe_borrow_amount,
        protocol.supply_apy,
        protocol.borrow_apy,
        args.yield_apy,
    )
    risk = assess_leverage_risk(params)

    lines = [
        f"Leverage projection ({protocol.name})",
        f"  Collateral:        {params.collateral_amount:.4f}",
        f"  Max borrow:        {params.max_borrow_amount:.4f}",
        f"  Safe borrow:       {params.safe_borrow_amount:.4f}",
        f"  Total exposure:    {params.total_exposure:.4f} ({params.leverage_ratio:.2f}x)",
        f"  LTV:               {params.resulting_ltv * 100:.1f}%",
        f"  Health factor:     {params.health_factor:.2f}",
        f"  Liquidation price: {params.liquidation_price:.4f}",
        f"  Gross yield:       {apy.gross_yield:.4f}",
        f"  Borrow cost:       {apy.borrow_cost:.4f}",
        f"  Net APY:           {apy.net_apy * 100:.2f}%",
        f"  Risk level:        {risk.risk_level.value}",
    ]
    lines += [f"  ! {w}" for w in risk.warnings]
    return "\n".join(lines)


async def _monitor(service: MonitorService, interval: int | None) -> None:
    handle = await service.start(interval)
    try:
        if handle is not None:
            await handle.wait()
    finally:
        service.stop()


async def _run(args: argparse.Namespace) -> None:
    """Execute the selected command."""
    configure_logging(args.log_level)

    if args.command == "simulate":
        protocol = load_config(args.config).protocol if args.config else ProtocolConfig()
        try:
            print(simulate(args, protocol))
        except InvalidInput as e:
            print(f"Invalid simulation input: {e}", file=sys.stderr)
            sys.exit(2)
        return

    config = load_config(args.config)
    service = build_service(config)

    if args.command == "check":
        await service.run_cycle()
        print(service.generate_report())
    elif args.command == "report":
        await service.run_cycle()
        print(await service.send_report())
    elif args.command == "monitor":
        await _monitor(service, args.interval)
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
    except KeyboardInterrupt:
        print("Shutting down monitor...", file=sys.stderr)
