"""Command line entry point.

Usage:
    asklepios serve --config config.yaml
    asklepios --once --dry-run            # one cycle, no writes
    python -m asklepios -c /etc/asklepios/config.yaml

Startup (config + cluster client) may fail and exits with status 1. Once
the loop is running it only logs faults and keeps going until SIGINT or
SIGTERM.
"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import logging
import signal
from typing import Optional, Sequence

from asklepios.cluster.client import KubernetesNodeClient
from asklepios.config.settings import DEFAULT_CONFIG_PATH, load_settings
from asklepios.healing.loop import HealingContext, ReconciliationLoop
from asklepios.utils.exceptions import ConfigError

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="asklepios",
        description=(
            "Check control-plane node status and execute an auto-healing "
            "process when a node is not ready"
        ),
    )
    parser.add_argument(
        "command",
        nargs="?",
        choices=["serve"],
        default="serve",
        help="Command to run (default: serve)",
    )
    parser.add_argument(
        "-c",
        "--config",
        default=DEFAULT_CONFIG_PATH,
        help=f"asklepios config file path (default: {DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument(
        "--kubeconfig",
        default=None,
        help="kubeconfig path (default: in-cluster config, then ~/.kube/config)",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single reconciliation cycle and exit",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Log cordon/taint changes without applying them",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )
    return parser


async def _serve(loop: ReconciliationLoop) -> None:
    event_loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            event_loop.add_signal_handler(sig, loop.stop)
        except (NotImplementedError, RuntimeError):
            logger.debug(f"Signal handler for {sig.name} not supported")
    await loop.run_forever()


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(level=getattr(logging, args.log_level), format=LOG_FORMAT)

    try:
        settings = load_settings(args.config)
        if args.dry_run:
            settings = dataclasses.replace(settings, dry_run=True)
        client = KubernetesNodeClient.from_environment(args.kubeconfig)
    except ConfigError as e:
        logger.error(f"Startup failed: {e}")
        return 1

    context = HealingContext.create(client, settings)
    loop = ReconciliationLoop(context)

    if args.once:
        report = loop.reconcile_once()
        return 1 if report.listing_failed or report.failures else 0

    try:
        asyncio.run(_serve(loop))
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    return 0
