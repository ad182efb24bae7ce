"""HTTP server entry point for the camera service."""

import argparse
import logging
from collections.abc import Sequence
from pathlib import Path

import uvicorn

from astrophi.drivers.config import (
    DEFAULT_COUNTER_FILE,
    DEFAULT_SHOT_INTERVAL_S,
    DEFAULT_SOLVE_TIMEOUT_S,
    DriverConfig,
    DriverMode,
)
from astrophi.observability import configure_logging, get_logger
from astrophi.web.app import create_app

logger = get_logger(__name__)

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3000
DEFAULT_LOG_FILE = "logs/astrophi.log"


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments for the server.

    Args:
        argv: Arguments to parse. None reads sys.argv.

    Returns:
        argparse.Namespace with attributes host, port, mode, counter_file,
        work_dir, log_file, no_log_file, solve_timeout, shot_interval,
        log_level and json_logs.

    Raises:
        SystemExit: On invalid arguments (e.g., --help, bad port number).

    Example:
        >>> args = parse_args(["--mode", "hardware", "--port", "8080"])
        >>> args.port
        8080
    """
    parser = argparse.ArgumentParser(
        description="AstroPhi - remote control for a tethered camera"
    )
    parser.add_argument(
        "--host",
        type=str,
        default=DEFAULT_HOST,
        help=f"Host address to bind to (default: {DEFAULT_HOST})",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=DEFAULT_PORT,
        help=f"Port to listen on (default: {DEFAULT_PORT})",
    )
    parser.add_argument(
        "--mode",
        type=str,
        choices=[m.value for m in DriverMode],
        default=DriverMode.HARDWARE.value,
        help=(
            "Driver mode: 'hardware' for a gphoto2 camera (default), "
            "'digital_twin' for simulation"
        ),
    )
    parser.add_argument(
        "--counter-file",
        type=Path,
        default=Path(DEFAULT_COUNTER_FILE),
        help=f"Shot counter file (default: ./{DEFAULT_COUNTER_FILE})",
    )
    parser.add_argument(
        "--work-dir",
        type=Path,
        default=None,
        help="Directory for plate-solve files (default: current directory)",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=Path(DEFAULT_LOG_FILE),
        help=f"Service log file served at /logs (default: {DEFAULT_LOG_FILE})",
    )
    parser.add_argument(
        "--no-log-file",
        action="store_true",
        help="Log to stderr only",
    )
    parser.add_argument(
        "--solve-timeout",
        type=float,
        default=DEFAULT_SOLVE_TIMEOUT_S,
        help=f"Plate-solve deadline in seconds (default: {DEFAULT_SOLVE_TIMEOUT_S:g})",
    )
    parser.add_argument(
        "--shot-interval",
        type=float,
        default=DEFAULT_SHOT_INTERVAL_S,
        help=(
            "Pause in seconds between frames of a Shoot command "
            f"(default: {DEFAULT_SHOT_INTERVAL_S:g})"
        ),
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["critical", "error", "warning", "info", "debug"],
        default="info",
        help="Log level (default: info)",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit logs as JSON lines",
    )
    return parser.parse_args(argv)


def config_from_args(args: argparse.Namespace) -> DriverConfig:
    """Build the service configuration from parsed arguments."""
    config = DriverConfig(
        mode=DriverMode(args.mode),
        counter_path=args.counter_file,
        solve_timeout_s=args.solve_timeout,
        shot_interval_s=args.shot_interval,
        log_file=None if args.no_log_file else args.log_file,
    )
    if args.work_dir is not None:
        config.work_dir = args.work_dir
    return config


def main(argv: Sequence[str] | None = None) -> None:
    """Main entry point for the astrophi server.

    Parses command-line arguments, configures structured logging (stderr
    plus the log file /logs serves) and runs the FastAPI app under uvicorn
    until interrupted.

    Args:
        argv: Arguments to parse. None reads sys.argv.

    Example:
        >>> # astrophi --mode digital_twin --port 8080
        >>> if __name__ == "__main__":
        ...     main()
    """
    args = parse_args(argv)
    config = config_from_args(args)

    configure_logging(
        level=getattr(logging, args.log_level.upper()),
        json_format=args.json_logs,
        log_file=config.log_file,
        # Replaces the defaults installed by get_logger() at import time
        force=True,
    )
    logger.info(
        "Starting AstroPhi server",
        host=args.host,
        port=args.port,
        mode=config.mode.value,
    )

    app = create_app(config)
    server = uvicorn.Server(
        uvicorn.Config(
            app,
            host=args.host,
            port=args.port,
            log_level=args.log_level,
        )
    )
    server.run()


if __name__ == "__main__":  # pragma: no cover
    main()
