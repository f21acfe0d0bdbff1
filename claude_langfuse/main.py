"""
Claude Langfuse Monitor - command line entry point.

Automatic Langfuse tracking for Claude Code activity:
- start: replay recent history, then watch for new conversation turns
- config: store Langfuse connection and trace metadata
- status: check the projects directory and credentials
"""

import argparse
import signal
import sys
import threading
from typing import Optional

from loguru import logger

from claude_langfuse.utils.config import (
    FILE_KEYS,
    default_config_file,
    get_settings,
    load_config_file,
    save_config,
)
from domains.conversation_tracking.monitor import (
    ConversationMonitor,
    ProjectsDirNotFoundError,
)
from domains.conversation_tracking.watchers.filesystem import WatcherError

__version__ = "1.0.0"

SECRET_KEYS = {"publicKey", "secretKey"}


def configure_logging(level: str = "INFO"):
    """Configure the loguru sink."""
    logger.remove()
    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>",
        level=level.upper()
    )


def cmd_start(args: argparse.Namespace) -> int:
    """Start monitoring Claude Code activity."""
    settings = get_settings()

    logger.info("Claude Langfuse Monitor")
    if not args.dry_run and not settings.has_credentials():
        logger.warning("Langfuse credentials not configured, batches will be rejected")

    monitor = ConversationMonitor(settings, dry_run=args.dry_run, quiet=args.quiet)

    try:
        monitor.get_projects_dir()
    except ProjectsDirNotFoundError as e:
        logger.error(str(e))
        monitor.shutdown()
        return 1

    stop_event = threading.Event()

    def _signal_handler(signum, frame):
        logger.info(f"Received signal {signum}, shutting down.")
        stop_event.set()

    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)

    try:
        monitor.run(stop_event, history_hours=args.history)
    except (ProjectsDirNotFoundError, WatcherError) as e:
        logger.error(str(e))
        monitor.shutdown()
        return 1

    return 0


def cmd_config(args: argparse.Namespace) -> int:
    """Show or update the config file."""
    config_file = default_config_file()

    if args.show:
        try:
            data = load_config_file(config_file)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to read {config_file}: {e}")
            return 1

        if not data:
            logger.warning("No configuration file found")
            logger.info("Using environment variables or defaults")
            return 0

        logger.info(f"Current configuration ({config_file}):")
        for key in FILE_KEYS:
            value = data.get(key)
            if value:
                logger.info(f"  {key}: {'***' if key in SECRET_KEYS else value}")
        return 0

    values = {
        "host": args.host,
        "publicKey": args.public_key,
        "secretKey": args.secret_key,
        "userId": args.user_id,
        "model": args.model,
        "source": args.source,
        "userTraceName": args.user_trace_name,
        "assistantTraceName": args.assistant_trace_name,
    }

    try:
        path = save_config(values, config_file)
    except OSError as e:
        logger.error(f"Failed to save config: {e}")
        return 1

    logger.success(f"Configuration saved to {path}")
    return 0


def cmd_status(args: argparse.Namespace) -> int:
    """Check monitor status and connection."""
    settings = get_settings()
    projects_dir = settings.get_projects_dir()

    if not projects_dir.is_dir():
        logger.error(f"[ERR] Claude projects directory not found: {projects_dir}")
        return 1
    logger.success(f"[OK] Claude projects directory found: {projects_dir}")

    if not settings.has_credentials():
        logger.error("[ERR] Langfuse credentials not configured")
        logger.info("Run: claude-langfuse config --public-key <key> --secret-key <key>")
        return 1

    logger.success("[OK] Langfuse credentials configured")
    logger.info(f"Host: {settings.host}")
    logger.success("[OK] Monitor ready to run")
    return 0


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse CLI arguments."""

    parser = argparse.ArgumentParser(
        prog="claude-langfuse",
        description="Automatic Langfuse tracking for Claude Code activity.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    start = subparsers.add_parser("start", help="Start monitoring Claude Code activity")
    start.add_argument(
        "-H",
        "--history",
        type=int,
        default=None,
        help="Process last N hours of history (default: 24).",
    )
    start.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Quiet mode - only show summaries.",
    )
    start.add_argument(
        "--dry-run",
        action="store_true",
        help="Parse and count messages without sending them to Langfuse.",
    )
    start.set_defaults(func=cmd_start)

    config = subparsers.add_parser(
        "config", help="Configure Langfuse connection and trace metadata"
    )
    config.add_argument("--host", help="Langfuse host URL")
    config.add_argument("--public-key", help="Langfuse public key")
    config.add_argument("--secret-key", help="Langfuse secret key")
    config.add_argument("--user-id", help="User ID for traces (default: system username)")
    config.add_argument("--model", help="Model name for generations (default: claude-code)")
    config.add_argument("--source", help="Source identifier (default: claude_code_monitor)")
    config.add_argument(
        "--user-trace-name",
        help="Name for user message traces (default: claude_code_user)",
    )
    config.add_argument(
        "--assistant-trace-name",
        help="Name for assistant response traces (default: claude_response)",
    )
    config.add_argument("--show", action="store_true", help="Show current configuration")
    config.set_defaults(func=cmd_config)

    status = subparsers.add_parser("status", help="Check monitor status and connection")
    status.set_defaults(func=cmd_status)

    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    """Entry point for the CLI."""

    args = parse_args(argv)
    configure_logging(get_settings().log_level)
    return args.func(args)


if __name__ == "__main__":  # pragma: no cover - CLI bridge
    sys.exit(main())
