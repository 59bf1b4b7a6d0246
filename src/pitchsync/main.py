#!/usr/bin/env python3

# ruff: noqa: T201

from __future__ import annotations

import argparse
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from pitchsync.adapters.sqlalchemy.unit_of_work import StartupError
from pitchsync.app import build_orchestrator, run_pipeline
from pitchsync.config import ConfigurationError, configure_logging
from pitchsync.domain.model import EntityType, Provider
from pitchsync.domain.pipeline import RunState

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from pitchsync.domain.pipeline import PipelineOrchestrator


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Reconcile K League data from several providers into one store"
    )
    parser.add_argument(
        "--season",
        type=int,
        help="Season year to reconcile (default: PITCHSYNC_SEASON or the current year)",
    )
    parser.add_argument(
        "--entity-type",
        dest="entity_types",
        action="append",
        type=EntityType,
        choices=list(EntityType),
        metavar="TYPE",
        help="Restrict the run to this entity type; repeatable "
        f"({', '.join(EntityType)})",
    )
    parser.add_argument(
        "--provider",
        dest="providers",
        action="append",
        type=Provider,
        choices=list(Provider),
        metavar="NAME",
        help=f"Only query this provider; repeatable ({', '.join(Provider)})",
    )
    parser.add_argument(
        "--workers",
        type=int,
        help="Worker threads for resolution and merging",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args(list(argv))
    if args.workers is not None and args.workers < 1:
        parser.error("--workers must be at least 1")
    if args.season is not None and args.season < 1:
        parser.error("--season must be a positive year")
    return args


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    load_dotenv()
    parsed_args = _parse_args(sys.argv[1:] if argv is None else argv)
    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)

    try:
        orchestrator = build_orchestrator(
            season=parsed_args.season,
            providers=parsed_args.providers,
            entity_types=parsed_args.entity_types,
            max_workers=parsed_args.workers,
        )
    except (ConfigurationError, StartupError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(2)

    _install_sigint_handler(orchestrator)
    try:
        report = run_pipeline(orchestrator)
    except Exception as e:  # noqa: BLE001
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    print(report.summary())
    sys.exit(0 if report.state is RunState.COMPLETED else 1)


def _install_sigint_handler(orchestrator: PipelineOrchestrator) -> None:
    def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
        """Finish the current stage on the first Ctrl+C, quit on the second."""
        if orchestrator.cancelled:
            print("\nClosed by user (Ctrl+C)")
            sys.exit(1)
        print("\nStopping after the current stage (Ctrl+C again to quit)")
        orchestrator.cancel()

    signal(SIGINT, sigint_handler)


if __name__ == "__main__":
    main()
