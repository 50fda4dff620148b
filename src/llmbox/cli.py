"""Command-line interface for llmbox.

Usage::

    llmbox serve
    llmbox run-batch
    llmbox run-batch --concurrency 4

``run-batch`` performs one newsletter run outside the HTTP service (manual
re-trigger after a failed scheduled run) and prints the statistics as JSON.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys

from llmbox.config import get_settings


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the ``llmbox`` command.

    Returns:
        A configured :class:`argparse.ArgumentParser`.
    """
    parser = argparse.ArgumentParser(prog="llmbox", description="Email-driven LLM assistant")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("serve", help="Run the HTTP service")

    batch = subparsers.add_parser("run-batch", help="Run one newsletter batch and print stats")
    batch.add_argument(
        "--concurrency",
        type=int,
        default=None,
        help="Users processed in parallel (default: BATCH_CONCURRENCY setting)",
    )

    return parser


def run_batch(concurrency: int | None = None) -> int:
    """Run one batch with services built from settings.

    Returns:
        Process exit code: 0 after a completed run, 1 when generation or
        sending is not configured.
    """
    from llmbox.app import close_services, configure_logging, initialize_services
    from llmbox.personifeed.batch import BatchDispatcher

    settings = get_settings()
    configure_logging(production=settings.production)
    services = initialize_services(settings)
    try:
        if services["generator"] is None or services["sender"] is None:
            print(
                "Error: ANTHROPIC_API_KEY and SENDGRID_API_KEY are required for a batch run",
                file=sys.stderr,
            )
            return 1

        dispatcher: BatchDispatcher = services["dispatcher"]
        if concurrency is not None:
            dispatcher = BatchDispatcher(
                services["store"],
                services["generator"],
                services["sender"],
                services["formatter"],
                concurrency=concurrency,
            )

        stats = asyncio.run(dispatcher.run())
        print(json.dumps({"success": True, "stats": stats.to_response()}, indent=2))
        return 0
    finally:
        close_services(services)


def main(argv: list[str] | None = None) -> None:
    """Entry point for the ``llmbox`` console script."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "serve":
        from llmbox.app import main as serve

        serve()
        return

    if args.command == "run-batch":
        sys.exit(run_batch(args.concurrency))


if __name__ == "__main__":
    main()
