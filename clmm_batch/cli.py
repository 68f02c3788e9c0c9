"""
Console entry point for a one-shot batch run.

Usage:
    python -m clmm_batch --requests requests.json
    python -m clmm_batch --requests requests.json --keypair ~/.config/solana/id.json --max-workers 4
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
from typing import List, Optional

from .config import load_config, load_requests, setup_logging
from .context import create_context
from .errors import ConfigurationError, SignerError
from .orchestrator import Orchestrator

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_RUN_FAILED = 1
EXIT_CONFIG_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="clmm_batch",
        description="Increase liquidity of CLMM positions, one transaction per position.",
    )
    parser.add_argument("--requests", help="JSON request file (default: BATCH_REQUESTS_FILE)")
    parser.add_argument("--keypair", help="Solana CLI keypair file (default: SOLANA_KEYPAIR_PATH)")
    parser.add_argument("--rpc-url", action="append", help="RPC endpoint, repeat for fallbacks (default: SOLANA_RPC_URL)")
    parser.add_argument("--max-workers", type=int, help="Requests processed concurrently (default: BATCH_MAX_WORKERS or 1)")
    parser.add_argument("--log-level", help="DEBUG, INFO, WARNING, ERROR (default: LOG_LEVEL)")
    parser.add_argument("--env-file", help="Load settings from this .env file")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    config = load_config(args.env_file)
    if args.log_level:
        config.logging.log_level = args.log_level
    if args.rpc_url:
        config.rpc.urls = args.rpc_url
    if args.keypair:
        config.signer.keypair_path = args.keypair
    if args.max_workers is not None:
        config.batch.max_workers = args.max_workers
    if args.requests:
        config.batch.requests_file = args.requests

    setup_logging(config.logging)

    try:
        if config.batch.max_workers < 1:
            raise ConfigurationError.invalid("max_workers", f"must be >= 1, got {config.batch.max_workers}")
        requests = load_requests(config.batch.requests_file)
        context = create_context(config)
    except (ConfigurationError, SignerError) as e:
        logger.error(f"Configuration error: {e}")
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    with context:
        orchestrator = Orchestrator(context, max_workers=config.batch.max_workers)

        # First Ctrl-C stops the batch after the in-flight request
        previous_handler = signal.signal(signal.SIGINT, lambda signum, frame: orchestrator.cancel())
        try:
            report = orchestrator.run(context.wallet, requests)
        finally:
            signal.signal(signal.SIGINT, previous_handler)

    for outcome in report.outcomes:
        print(f"#{outcome.index} {outcome.position_address} +{outcome.liquidity_delta} {outcome.signature}")
    for outcome in report.orphaned:
        print(f"#{outcome.index} {outcome.position_address} +{outcome.liquidity_delta} {outcome.signature} (after abort)")

    if not report.succeeded:
        stage = report.failed_stage.value if report.failed_stage else "not started"
        print(
            f"Run failed at request #{report.failed_index} ({stage}): {report.error}. "
            f"{report.completed}/{report.total} request(s) completed.",
            file=sys.stderr,
        )
        return EXIT_RUN_FAILED

    print(f"{report.completed}/{report.total} request(s) completed.")
    return EXIT_OK
