"""
Command-line interface for the parcel notifier.
"""

from __future__ import annotations
import sys
import argparse

from parcel_notifier.logging import logger


def cmd_run(args) -> None:
    """Run one poll cycle."""
    from parcel_notifier.pipeline.run import PipelineError, main as run_pipeline
    try:
        run_pipeline(args.query)
    except PipelineError as e:
        logger.error(f"Cycle aborted at stage '{e.stage}', watermark not saved: {e.cause}")
        sys.exit(1)
    except Exception as e:
        logger.exception(f"Startup failed: {e}")
        sys.exit(1)


def cmd_service(args) -> None:
    """Run poll cycles on an interval."""
    from parcel_notifier.service import main as run_service
    try:
        run_service(args.query)
    except Exception as e:
        logger.exception(f"Service execution failed: {e}")
        sys.exit(1)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="parcel-notifier",
        description="Forward carrier delivery notifications from Gmail to Slack",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s run "from:mail@kuronekoyamato.co.jp"       Run one cycle
  %(prog)s service "from:mail@kuronekoyamato.co.jp"   Poll every SCHEDULER_INTERVAL seconds
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    run_parser = subparsers.add_parser("run", help="Run one poll cycle")
    run_parser.add_argument("query", help="Gmail search filter")
    run_parser.set_defaults(func=cmd_run)

    service_parser = subparsers.add_parser("service", help="Poll on an interval")
    service_parser.add_argument("query", help="Gmail search filter")
    service_parser.set_defaults(func=cmd_service)

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    args.func(args)


if __name__ == "__main__":
    main()
