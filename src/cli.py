"""Watch a project's deployment logs from the terminal.

Usage:
    deploy-monitor 42
    deploy-monitor 42 --redeploy --commit 1a2b3c4
    deploy-monitor 42 --stop --api-url https://deploy.example.com

Settings not given on the command line come from DEPLOY_MONITOR_*
environment variables or a .env file.
"""

import argparse
import asyncio
import sys
from typing import Optional, TextIO

from src.client.api import DeployApiClient
from src.coordinator.state import ProjectState, ProjectView
from src.utils.config import get_settings
from src.utils.logger import setup_logging


class TerminalLogSink:
    """Writes log chunks straight to a text stream."""

    # ANSI erase display, cursor home
    CLEAR_SEQUENCE = "\033[2J\033[H"

    def __init__(self, stream: Optional[TextIO] = None, clear_screen: bool = False):
        self.stream = stream or sys.stdout
        self.clear_screen = clear_screen

    def on_chunk(self, text: str) -> None:
        if not text:
            return
        self.stream.write(text)
        self.stream.flush()

    def on_clear(self) -> None:
        if self.clear_screen:
            self.stream.write(self.CLEAR_SEQUENCE)
            self.stream.flush()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="deploy-monitor",
        description="Follow the status and live logs of a project's deployments.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("project_id", help="Project to monitor.")
    action = parser.add_mutually_exclusive_group()
    action.add_argument(
        "--redeploy",
        action="store_true",
        help="Trigger a new deployment before following the logs.",
    )
    action.add_argument(
        "--stop",
        action="store_true",
        help="Stop the project, then follow the logs.",
    )
    parser.add_argument("--commit", help="Commit to deploy (with --redeploy).")
    parser.add_argument("--api-url", help="Deployment API base URL.")
    parser.add_argument("--api-key", help="API token sent as a bearer token.")
    parser.add_argument("--log-level", help="Logging level (DEBUG, INFO, ...).")
    parser.add_argument(
        "--clear-screen",
        action="store_true",
        help="Clear the terminal when switching deployments.",
    )
    return parser


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse and validate command line arguments."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.commit and not args.redeploy:
        parser.error("--commit can only be used with --redeploy")
    return args


async def watch(args: argparse.Namespace) -> int:
    """Run the coordinator until interrupted. Returns the exit code."""
    settings = get_settings()
    api = DeployApiClient(
        base_url=args.api_url,
        api_key=args.api_key,
        settings=settings,
    )
    sink = TerminalLogSink(clear_screen=args.clear_screen)
    state = ProjectState(args.project_id, api, sink=sink, settings=settings)

    last_seen: list[tuple] = []

    def on_change(view: ProjectView) -> None:
        # Report selection and status transitions only
        key = (view.active_deployment_id, view.status)
        if view.active_deployment is None or last_seen[-1:] == [key]:
            return
        last_seen[:] = [key]
        print(f"\n[{view.active_deployment_id}] {view.status.value}", file=sys.stderr)

    state.subscribe(on_change)

    try:
        await state.initialize()
        if state.project is None:
            print(f"ERROR: Could not load project {args.project_id}", file=sys.stderr)
            return 1

        if args.redeploy and not await state.request_redeploy(args.commit):
            print("ERROR: Redeploy request failed", file=sys.stderr)
            return 1
        if args.stop and not await state.request_stop():
            print("ERROR: Stop request failed", file=sys.stderr)
            return 1

        await asyncio.Event().wait()
    finally:
        await state.aclose()
        await api.aclose()
    return 0


def main(argv: Optional[list[str]] = None) -> None:
    args = parse_args(argv)
    settings = get_settings()
    setup_logging(level=args.log_level or settings.log_level)

    try:
        code = asyncio.run(watch(args))
    except KeyboardInterrupt:
        code = 130
    sys.exit(code)


if __name__ == "__main__":
    main()
