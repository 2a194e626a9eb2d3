from __future__ import annotations

import argparse
import logging
import sys
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Sequence
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import ValidationError

from fil_terminator.adapters.lotus import LotusChainState
from fil_terminator.adapters.penalty import ProtocolPenaltyModel
from fil_terminator.batch import export
from fil_terminator.batch.inputs import (
    parse_operator_input,
    parse_operator_list,
    read_epoch_tasks,
    read_operator_ids,
)
from fil_terminator.batch.prometheus_metrics import PrometheusMetricsClient
from fil_terminator.batch.runner import (
    batch_calculate,
    batch_strategy,
    calculate_termination_fee,
    expiration_distribution,
)
from fil_terminator.batch.summary import (
    print_calculation_result,
    print_calculation_summary,
    print_calculation_table,
    print_expiration_distribution,
    print_fleet_summary,
    print_strategy_table,
    summarize_calculations,
)
from fil_terminator.config import LotusConfig, TerminatorConfig
from fil_terminator.core.domain.epochs import (
    MAINNET_GENESIS,
    epoch_to_time,
    parse_time,
    time_to_epoch,
)
from fil_terminator.core.domain.errors import InvalidInputError, TerminatorError
from fil_terminator.core.domain.ranges import parse_sector_numbers
from fil_terminator.core.domain.types import CalculationRequest, StrategyTask, validate_operator_id
from fil_terminator.core.events.event_bus import EventBus
from fil_terminator.core.events.sinks.file_recorder import FileRecorderSink
from fil_terminator.core.events.sinks.sink_logging import LoggingEventSink
from fil_terminator.core.fees.strategy import summarize_fleet

LOGGER = logging.getLogger(__name__)

_TIME_FORMAT = "%Y-%m-%d %H:%M:%S %Z"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _resolve_config(args: argparse.Namespace) -> TerminatorConfig:
    cfg = TerminatorConfig.load(args.config) if args.config else TerminatorConfig()
    cfg = cfg.apply_env()

    lotus = cfg.lotus
    if args.api_url:
        if "://" in args.api_url:
            lotus = LotusConfig(
                api_url=args.api_url,
                token=args.token or lotus.token,
                timeout_seconds=lotus.timeout_seconds,
            )
        else:
            lotus = LotusConfig.from_api_info(args.api_url, timeout_seconds=lotus.timeout_seconds)
    if args.token:
        lotus = lotus.model_copy(update={"token": args.token})

    return cfg.with_overrides(
        lotus=lotus,
        workers=getattr(args, "workers", None),
        expiration_threshold_days=getattr(args, "expiration_threshold", None),
    )


def _build_event_bus(args: argparse.Namespace) -> EventBus:
    bus = EventBus([LoggingEventSink(logging.getLogger("fil_terminator.events"))])
    if args.events:
        bus.register(FileRecorderSink(args.events))
    return bus


def _open_chain(cfg: TerminatorConfig) -> LotusChainState:
    return LotusChainState(cfg.lotus)


def _push_metrics(*, mode: str, operators: int, failed: int, sectors: int, total_fee: int) -> None:
    metrics = PrometheusMetricsClient()
    if not metrics.is_enabled():
        return
    try:
        metrics.record_batch(
            mode=mode,
            operators=operators,
            failed=failed,
            sectors=sectors,
            total_fee=total_fee,
        )
        metrics.push_all(job=f"fil-terminator-{mode}")
    except Exception:  # pylint: disable=broad-exception-caught
        LOGGER.exception("Prometheus push failed")


def _exit_code(cancel: threading.Event) -> int:
    if cancel.is_set():
        print("Interrupted: tasks not yet started were cancelled", file=sys.stderr)
        return 130
    return 0


def _genesis(cfg: TerminatorConfig, offline: bool) -> datetime:
    if offline:
        print("Using offline mode with default mainnet genesis time")
        return MAINNET_GENESIS

    try:
        with _open_chain(cfg) as chain:
            return chain.genesis_time()
    except TerminatorError as exc:
        print(f"Warning: Failed to get genesis from node ({exc}), using default mainnet genesis time")
        return MAINNET_GENESIS


def _zone(name: str) -> Any:
    if name == "local":
        return None
    if name == "utc":
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise InvalidInputError(f"invalid timezone: {name}") from exc


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def cmd_calculate(args: argparse.Namespace, cfg: TerminatorConfig, bus: EventBus) -> int:
    sector_numbers = () if args.all else tuple(parse_sector_numbers(args.sectors))
    if not args.all and not sector_numbers:
        raise InvalidInputError("no sector numbers given")

    request = CalculationRequest(
        operator_id=validate_operator_id(args.miner),
        target_epoch=args.epoch,
        sector_numbers=sector_numbers,
    )

    with _open_chain(cfg) as chain:
        result = calculate_termination_fee(chain, ProtocolPenaltyModel(), request, cfg.projection)

    if result.error is not None:
        print(f"Error: {result.error}", file=sys.stderr)
        return 1

    print_calculation_result(result, verbose=args.verbose)
    if args.json:
        export.write_results_json(args.json, [result])
    return 0


def cmd_batch(args: argparse.Namespace, cfg: TerminatorConfig, bus: EventBus) -> int:
    requests = read_epoch_tasks(args.input)
    print(f"Processing {len(requests)} miners with {cfg.workers} workers...")
    cancel = threading.Event()

    with _open_chain(cfg) as chain:
        results = batch_calculate(
            chain,
            ProtocolPenaltyModel(),
            requests,
            workers=cfg.workers,
            projection=cfg.projection,
            cancel=cancel,
            event_bus=bus,
        )

    if args.output:
        export.write_calculation_csv(args.output, results)
        print(f"Results written to {args.output}")
    else:
        print_calculation_table(results)
    if args.json:
        export.write_results_json(args.json, results)

    summary = summarize_calculations(results)
    print_calculation_summary(summary)
    _push_metrics(
        mode="batch",
        operators=summary.operators,
        failed=summary.failed,
        sectors=summary.total_sectors,
        total_fee=summary.total_fee,
    )
    return _exit_code(cancel)


def cmd_strategy(args: argparse.Namespace, cfg: TerminatorConfig, bus: EventBus) -> int:
    operator_ids = parse_operator_input(args.input)
    threshold = cfg.expiration_threshold_days
    tasks = [
        StrategyTask(
            operator_id=operator_id,
            termination_epoch=args.termination_epoch,
            expiration_threshold_days=threshold,
        )
        for operator_id in operator_ids
    ]

    print("=== Strategy Calculation ===")
    print(f"Miners to process: {len(tasks)}")
    print(f"Termination epoch: {args.termination_epoch}")
    if threshold == 0:
        print("Expiration threshold: 0 days (optimization disabled - terminate all)")
    else:
        print(f"Expiration threshold: {threshold} days")
    print(f"Concurrent workers: {cfg.workers}")
    cancel = threading.Event()

    with _open_chain(cfg) as chain:
        results = batch_strategy(
            chain,
            ProtocolPenaltyModel(),
            tasks,
            workers=cfg.workers,
            projection=cfg.projection,
            cancel=cancel,
            event_bus=bus,
        )

    if args.output:
        export.write_strategy_csv(args.output, results)
        print(f"Results written to {args.output}")
    else:
        print_strategy_table(results, verbose=args.verbose)
    if args.json:
        export.write_results_json(args.json, results)

    summary = summarize_fleet(results)
    print_fleet_summary(summary)
    _push_metrics(
        mode="strategy",
        operators=summary.operators,
        failed=summary.failed,
        sectors=summary.total_sectors,
        total_fee=summary.combined_fee,
    )
    return _exit_code(cancel)


def cmd_epoch_to_time(args: argparse.Namespace, cfg: TerminatorConfig, bus: EventBus) -> int:
    if args.epoch < 0:
        raise InvalidInputError(f"epoch cannot be negative: {args.epoch}")
    zone = _zone(args.tz)
    moment = epoch_to_time(args.epoch, _genesis(cfg, args.offline))
    display = moment.astimezone(zone)

    print(f"Epoch: {args.epoch}")
    print(f"Time (UTC): {moment.astimezone(timezone.utc).strftime(_TIME_FORMAT)}")
    print(f"Time ({args.tz}): {display.strftime(_TIME_FORMAT)}")
    print(f"Unix timestamp: {int(moment.timestamp())}")
    return 0


def cmd_time_to_epoch(args: argparse.Namespace, cfg: TerminatorConfig, bus: EventBus) -> int:
    moment = parse_time(args.time)
    epoch = time_to_epoch(moment, _genesis(cfg, args.offline))

    print(f"Time: {moment.strftime(_TIME_FORMAT)}")
    print(f"Time (UTC): {moment.astimezone(timezone.utc).strftime(_TIME_FORMAT)}")
    print(f"Epoch: {epoch}")
    print(f"Unix timestamp: {int(moment.timestamp())}")
    return 0


def cmd_sector_expiration(args: argparse.Namespace, cfg: TerminatorConfig, bus: EventBus) -> int:
    if args.miner:
        operator_ids = parse_operator_list(args.miner)
    elif args.miners:
        operator_ids = parse_operator_list(args.miners)
    else:
        operator_ids = read_operator_ids(args.file)
    if not operator_ids:
        raise InvalidInputError("no miners found")
    cancel = threading.Event()

    with _open_chain(cfg) as chain:
        dist = expiration_distribution(
            chain,
            operator_ids,
            reference_epoch=args.epoch,
            workers=cfg.workers,
            cancel=cancel,
            event_bus=bus,
        )

    print(f"Processed {len(operator_ids)} miners at reference epoch {dist.reference_epoch}")
    if args.output:
        export.write_expiration_csv(args.output, dist)
        print(f"Results written to {args.output}")
    else:
        print_expiration_distribution(dist, verbose=args.verbose)
    return _exit_code(cancel)


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fil-terminator",
        description="Filecoin miner sector termination fee calculation tool",
    )
    parser.add_argument("--config", type=Path, help="Path to a JSON or TOML config file.")
    parser.add_argument("--api-url", help="Lotus API URL or multiaddr (overrides FULLNODE_API_INFO).")
    parser.add_argument("--token", help="Lotus API token.")
    parser.add_argument("--events", type=Path, help="Append domain events to this JSON-lines file.")

    sub = parser.add_subparsers(dest="command", required=True)

    # calculate
    p = sub.add_parser("calculate", help="Calculate termination fees")
    p.add_argument("-m", "--miner", required=True, help="Miner address")
    group = p.add_mutually_exclusive_group(required=True)
    group.add_argument("-s", "--sectors", help="Sector list, comma separated (e.g. 1,2,3 or 1-10)")
    group.add_argument("-a", "--all", action="store_true", help="Calculate all sectors")
    p.add_argument("-e", "--epoch", type=int, default=0, help="Target epoch (default: current height)")
    p.add_argument("--json", type=Path, help="Also write the result as JSON.")
    p.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    p.set_defaults(handler=cmd_calculate)

    # batch
    p = sub.add_parser("batch", help="Batch calculate termination fees from CSV file")
    p.add_argument("-i", "--input", type=Path, required=True, help="Input CSV (minerid,epoch)")
    p.add_argument("-o", "--output", type=Path, help="Output CSV (default: print table)")
    p.add_argument("--json", type=Path, help="Also write results as JSON.")
    p.add_argument("-w", "--workers", type=int, help="Number of concurrent workers")
    p.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    p.set_defaults(handler=cmd_batch)

    # strategy
    p = sub.add_parser("strategy", help="Terminate-or-expire strategy for many miners")
    p.add_argument("-i", "--input", required=True, help="CSV/text file with miner ids, or a single miner id")
    p.add_argument("-e", "--termination-epoch", type=int, required=True, help="Termination epoch for all miners")
    p.add_argument(
        "-t",
        "--expiration-threshold",
        type=int,
        help="Sectors expiring within this many days expire naturally (0 = terminate all; default 7)",
    )
    p.add_argument("-o", "--output", type=Path, help="Output CSV (default: print table)")
    p.add_argument("--json", type=Path, help="Also write results as JSON.")
    p.add_argument("-w", "--workers", type=int, help="Number of concurrent workers")
    p.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    p.set_defaults(handler=cmd_strategy)

    # tools
    tools = sub.add_parser("tools", help="Epoch/time conversion and sector statistics")
    tools_sub = tools.add_subparsers(dest="tool", required=True)

    p = tools_sub.add_parser("epoch-to-time", help="Convert epoch to time")
    p.add_argument("-e", "--epoch", type=int, required=True, help="Epoch number")
    p.add_argument("--tz", default="local", help="Output timezone: local, utc or an IANA name")
    p.add_argument("--offline", action="store_true", help="Use the default mainnet genesis time")
    p.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    p.set_defaults(handler=cmd_epoch_to_time)

    p = tools_sub.add_parser("time-to-epoch", help="Convert time to epoch")
    p.add_argument("-t", "--time", required=True, help="Time string, e.g. '2024-01-01 12:00:00'")
    p.add_argument("--offline", action="store_true", help="Use the default mainnet genesis time")
    p.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    p.set_defaults(handler=cmd_time_to_epoch)

    p = tools_sub.add_parser("sector-expiration", help="Sector expiration distribution")
    group = p.add_mutually_exclusive_group(required=True)
    group.add_argument("-m", "--miner", help="Single miner address")
    group.add_argument("--miners", help="Comma-separated miner addresses")
    group.add_argument("-f", "--file", type=Path, help="Plain text (one per line) or CSV with minerid column")
    p.add_argument("--epoch", type=int, default=0, help="Reference epoch (default: current)")
    p.add_argument("-o", "--output", type=Path, help="Output CSV")
    p.add_argument("-w", "--workers", type=int, help="Number of concurrent workers")
    p.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    p.set_defaults(handler=cmd_sector_expiration)

    return parser


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    try:
        cfg = _resolve_config(args)
    except (TerminatorError, ValidationError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    bus = _build_event_bus(args)
    try:
        return args.handler(args, cfg, bus)
    except (TerminatorError, ValidationError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("Interrupted", file=sys.stderr)
        return 130
    finally:
        bus.close()


if __name__ == "__main__":
    sys.exit(main())
