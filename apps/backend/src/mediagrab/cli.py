"""mediagrab command-line interface with subcommands.

Usage:
    mediagrab serve [--host HOST] [--port PORT]
    mediagrab sweep [-d output_dir] [--hours N]
    mediagrab classify [file]
"""

import argparse
import logging
import sys
from pathlib import Path

from mediagrab.config import settings
from mediagrab.services.classify import classify_output, suggestion_for
from mediagrab.services.retention import FileRetentionManager


def cmd_serve(args: argparse.Namespace) -> None:
    import uvicorn

    settings.ensure_directories()
    uvicorn.run(
        "mediagrab.main:app",
        host=args.host or settings.host,
        port=args.port or settings.port,
        reload=settings.debug,
    )


def cmd_sweep(args: argparse.Namespace) -> None:
    """Run one retention sweep over the output directory."""
    output_dir = Path(args.output_dir) if args.output_dir else settings.output_dir
    hours = args.hours if args.hours is not None else settings.file_retention_hours
    removed = FileRetentionManager(output_dir, hours * 3600).sweep()
    print(f"Removed {removed} file(s) older than {hours}h from {output_dir}")


def cmd_classify(args: argparse.Namespace) -> None:
    """Classify engine output read from a file or stdin."""
    if args.input:
        text = Path(args.input).read_text(encoding="utf-8", errors="replace")
    else:
        text = sys.stdin.read()
    error_type = classify_output(text)
    print(error_type.value)
    hint = suggestion_for(error_type)
    if hint:
        print(hint)


# --- Main CLI ---

def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="mediagrab",
        description="mediagrab - background media acquisition service",
    )
    subparsers = parser.add_subparsers(dest="command", help="available commands")

    p_serve = subparsers.add_parser("serve", help="run the HTTP service")
    p_serve.add_argument("--host", type=str, help=f"bind address (default: {settings.host})")
    p_serve.add_argument("--port", type=int, help=f"port (default: {settings.port})")

    p_sweep = subparsers.add_parser("sweep", help="delete produced files past the retention window")
    p_sweep.add_argument("-d", "--output-dir", type=str, help="output directory")
    p_sweep.add_argument("--hours", type=float, help="retention window in hours")

    p_classify = subparsers.add_parser("classify", help="classify extraction engine output")
    p_classify.add_argument("input", nargs="?", help="file with engine output (default: stdin)")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Dispatch
    if args.command == "serve":
        cmd_serve(args)
    elif args.command == "sweep":
        cmd_sweep(args)
    elif args.command == "classify":
        cmd_classify(args)


if __name__ == "__main__":
    main()
