#!/usr/bin/env python
"""Main entry point for the NotePlan MCP server."""
import argparse
import atexit
import logging
import os
import sys
from pathlib import Path

from noteplan_mcp.config import config
from noteplan_mcp.exceptions import ConfigurationError
from noteplan_mcp.observability import configure_logging, metrics
from noteplan_mcp.server.mcp_server import TRANSPORTS, NotePlanMcpServer
from noteplan_mcp.services.note_service import NoteService, create_repository


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="NotePlan MCP Server")
    parser.add_argument(
        "--base-dir",
        help="NotePlan data directory (holds the Calendar and Notes folders)",
        type=str,
        default=os.environ.get("NOTEPLAN_BASE_DIR"),
    )
    parser.add_argument(
        "--calendar-dir",
        help="Daily notes directory (relative to the base directory)",
        type=str,
        default=os.environ.get("NOTEPLAN_CALENDAR_DIR"),
    )
    parser.add_argument(
        "--notes-dir",
        help="Regular notes directory (relative to the base directory)",
        type=str,
        default=os.environ.get("NOTEPLAN_NOTES_DIR"),
    )
    parser.add_argument(
        "--log-level",
        help="Logging level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=os.environ.get("NOTEPLAN_LOG_LEVEL", "INFO"),
    )
    parser.add_argument(
        "--transport",
        help="MCP transport",
        choices=list(TRANSPORTS),
        default="stdio",
    )
    return parser.parse_args(argv)


def update_config(args):
    """Update the global config with command line arguments."""
    if args.base_dir:
        config.base_dir = Path(args.base_dir).expanduser()
    if args.calendar_dir:
        config.calendar_dir = Path(args.calendar_dir)
    if args.notes_dir:
        config.notes_dir = Path(args.notes_dir)


def _save_metrics_on_exit():
    """Save metrics to disk on server shutdown."""
    try:
        if metrics.save_metrics():
            logging.getLogger(__name__).info("Metrics saved to disk on shutdown")
    except Exception as e:
        logging.getLogger(__name__).warning(f"Failed to save metrics on shutdown: {e}")


def main(argv=None):
    """Run the NotePlan MCP server."""
    # Parse arguments and update config
    args = parse_args(argv)
    update_config(args)

    # Configure logging (console + persistent file logging with rotation)
    log_level = getattr(logging, args.log_level.upper(), logging.INFO)
    try:
        log_dir = configure_logging(log_dir=config.log_dir, level=log_level, console=True)
    except Exception as e:
        # Fall back to basic console logging if file logging fails
        logging.basicConfig(level=log_level)
        logging.getLogger(__name__).warning(f"Failed to configure file logging: {e}")
        log_dir = None

    logger = logging.getLogger(__name__)
    if log_dir:
        logger.info(f"Persistent logging enabled: {log_dir}")

    # Register metrics save on shutdown
    atexit.register(_save_metrics_on_exit)

    try:
        repository = create_repository(config)
    except ConfigurationError as e:
        logger.error(f"Cannot start: {e.message}")
        sys.exit(1)

    # Create and run the MCP server
    try:
        logger.info(f"Starting NotePlan MCP server ({repository.kind} backend)")
        server = NotePlanMcpServer(service=NoteService(repository))
        server.run(transport=args.transport)
    except Exception as e:
        logger.error(f"Error running server: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
