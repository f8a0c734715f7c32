#!/usr/bin/env python3
"""Exam notice board: open application windows for competitive exams.

This CLI serves and debugs the notice board that checks each registered
program's official pages and news coverage, and lists the programs whose
application form is open right now.

Commands:
    serve       Run the HTTP server (GET /api/notice-board)
    run         Build the notice board once and print the JSON payload
    check       Evaluate a single program and show every intermediate result
    status      Show configuration and the program registry

Examples:
    python main.py serve --port 8000
    python main.py run --program jee-main --program neet-ug
    python main.py run --output board.json
    python main.py -v check jee-main
    python main.py status

Environment:
    GEMINI_API_KEY: Optional; enables the judgment-model validator
    See config.py for all configuration options
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from config import Config
from observability.logging import setup_logging
from registry import PROGRAMS, get_program, select_programs

logger = logging.getLogger(__name__)


def cmd_serve(args: argparse.Namespace, config: Config) -> int:
    """Run the HTTP server until interrupted.

    Args:
        args: Parsed command line arguments
        config: Application configuration

    Returns:
        Exit code (0 for success)
    """
    from server import run_server

    if args.host:
        config.host = args.host
    if args.port:
        config.port = args.port

    run_server(config)
    return 0


def cmd_run(args: argparse.Namespace, config: Config) -> int:
    """Build the notice board once.

    Args:
        args: Parsed command line arguments
        config: Application configuration

    Returns:
        Exit code (0 for success, 1 when the payload carries an error)
    """
    from pipeline import build_notice_board

    try:
        programs = select_programs(args.program) if args.program else None
    except KeyError as e:
        print(f"Error: {e.args[0]}", file=sys.stderr)
        return 1

    try:
        payload = asyncio.run(build_notice_board(config, programs))
    except KeyboardInterrupt:
        logger.info("Stopped by user (Ctrl+C)")
        return 130  # Standard exit code for SIGINT

    output = json.dumps(payload, indent=2, ensure_ascii=False)
    if args.output:
        path = Path(args.output)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(output + "\n", encoding="utf-8")
        logger.info("Payload written | path=%s sections=%d", path, len(payload["sections"]))
    else:
        print(output)

    return 1 if payload.get("error") else 0


def cmd_check(args: argparse.Namespace, config: Config) -> int:
    """Evaluate one program and print its full evaluation.

    Args:
        args: Parsed command line arguments
        config: Application configuration

    Returns:
        Exit code (0 for success)
    """
    from pipeline import check_program

    program = get_program(args.program_id)
    if program is None:
        known = ", ".join(p.id for p in PROGRAMS)
        print(f"Error: unknown program '{args.program_id}' (known: {known})", file=sys.stderr)
        return 1

    result = asyncio.run(check_program(config, program))
    print(json.dumps(result, indent=2, ensure_ascii=False))
    return 0


def cmd_status(args: argparse.Namespace, config: Config) -> int:
    """Display configuration and the program registry.

    Args:
        args: Parsed command line arguments
        config: Application configuration

    Returns:
        Exit code (0 for success)
    """
    status = {
        "config": {
            "validator_enabled": config.validator_enabled,
            "validator_model": config.validator_model,
            "validator_fallback_model": config.validator_fallback_model,
            "confidence_threshold": config.confidence_threshold,
            "revalidate_seconds": config.revalidate_seconds,
            "feed_max_items": config.feed_max_items,
            "user_agent": config.user_agent,
            "verify_ssl": config.verify_ssl,
            "bind": f"{config.host}:{config.port}",
            "enable_logfire": config.enable_logfire,
        },
        "programs": [
            {"id": p.id, "exam_name": p.exam_name, "apply_url": p.official_apply_url}
            for p in PROGRAMS
        ],
    }

    print(json.dumps(status, indent=2))
    return 0


def main() -> int:
    """Main entry point.

    Returns:
        Exit code
    """
    parser = argparse.ArgumentParser(
        description="Exam notice board: open application windows",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # serve command
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP server")
    serve_parser.add_argument("--host", help="Bind address (overrides HOST)")
    serve_parser.add_argument("--port", type=int, help="Bind port (overrides PORT)")

    # run command
    run_parser = subparsers.add_parser("run", help="Build the notice board once")
    run_parser.add_argument(
        "--program",
        action="append",
        metavar="ID",
        help="Only evaluate this program (repeatable; default: all)",
    )
    run_parser.add_argument(
        "--output", "-o",
        help="Write the JSON payload to this file instead of stdout",
    )

    # check command
    check_parser = subparsers.add_parser("check", help="Evaluate one program with full detail")
    check_parser.add_argument("program_id", help="Program id (see `status`)")

    # status command
    subparsers.add_parser("status", help="Show configuration and programs")

    args = parser.parse_args()

    config = Config.load()
    setup_logging(config, verbose=args.verbose)

    if args.command in ("serve", "run", "check"):
        error = config.validate()
        if error:
            print(f"Configuration error: {error}", file=sys.stderr)
            return 1

    commands = {
        "serve": cmd_serve,
        "run": cmd_run,
        "check": cmd_check,
        "status": cmd_status,
    }

    if args.command in commands:
        try:
            return commands[args.command](args, config)
        except Exception as e:
            logger.error("Command failed | cmd=%s error=%s", args.command, e, exc_info=True)
            print(f"Error: {e}", file=sys.stderr)
            return 1
    else:
        parser.print_help()
        return 0


if __name__ == "__main__":
    sys.exit(main())
