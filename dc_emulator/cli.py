"""Command line entry point: run a named profile in a throwaway container."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from dotenv import load_dotenv
from pydantic import ValidationError

from dc_emulator.config import EmulatorSettings
from dc_emulator.profiles import ProfileConfigError, UnknownProfileError, load_run_profiles
from dc_emulator.runtime import RunOrchestrator, RunOutcome

EXIT_OK = 0
EXIT_RUN_FAILED = 1
EXIT_SEVERE = 2
EXIT_USAGE = 64

logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO", verbose: bool = False) -> None:
    """Configure root logging for the emulator, unless a handler is already installed."""
    root = logging.getLogger()
    if root.handlers:
        return

    log_level = logging.DEBUG if verbose else getattr(logging, level.upper(), logging.INFO)
    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(
        logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    )
    root.addHandler(console_handler)
    root.setLevel(log_level)

    # Set log level for specific loggers to reduce noise
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("docker").setLevel(logging.WARNING)


def parse_args(argv: Optional[Sequence[str]], settings: EmulatorSettings) -> argparse.Namespace:
    """Parse CLI arguments."""
    parser = argparse.ArgumentParser(description="Build (if needed) and run a named profile in a Docker container.")
    parser.add_argument("profile", nargs="?", help="Name of the run profile to execute.")
    parser.add_argument(
        "-c",
        "--config",
        default=settings.config_path,
        help=f"Path to the profiles file (default: {settings.config_path}).",
    )
    parser.add_argument(
        "--workdir",
        type=Path,
        default=Path(settings.workdir) if settings.workdir else None,
        help="Directory relative paths resolve against (default: current directory).",
    )
    parser.add_argument(
        "--wait-timeout",
        type=float,
        default=settings.wait_timeout_seconds,
        help="Seconds to wait for the container before giving up (default: no limit).",
    )
    parser.add_argument("--list", action="store_true", help="List available profiles and exit.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    return parser.parse_args(argv)


def exit_code_for(outcome: RunOutcome) -> int:
    """Map a run outcome to a process exit code."""
    if outcome.severe:
        return EXIT_SEVERE
    if not outcome.success:
        return EXIT_RUN_FAILED
    return outcome.exit_code or EXIT_OK


def main(argv: Optional[Sequence[str]] = None) -> int:
    load_dotenv()
    try:
        settings = EmulatorSettings()
    except ValidationError as exc:
        logger.error("Invalid emulator settings: %s", exc)
        return EXIT_USAGE
    args = parse_args(argv, settings)
    setup_logging(settings.log_level, args.verbose)

    try:
        profiles = load_run_profiles(args.config)
    except ProfileConfigError as exc:
        logger.error("%s", exc)
        return EXIT_USAGE

    if args.list or not args.profile:
        for name in sorted(profiles.runs):
            print(name)
        return EXIT_OK if args.list else EXIT_USAGE

    try:
        profile = profiles.get(args.profile)
    except UnknownProfileError as exc:
        logger.error("%s", exc.args[0])
        return EXIT_USAGE

    try:
        spec = profile.to_run_spec(args.workdir or Path.cwd())
    except ProfileConfigError as exc:
        logger.error("%s", exc)
        return EXIT_USAGE

    orchestrator = RunOrchestrator(
        wait_timeout=args.wait_timeout,
        container_suffix=settings.container_suffix,
    )
    logger.info("Running profile '%s' with image %s", args.profile, spec.image)
    outcome = orchestrator.run_spec(args.profile, spec)
    return exit_code_for(outcome)


if __name__ == "__main__":
    sys.exit(main())
