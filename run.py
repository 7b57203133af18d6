#!/usr/bin/env python3
"""
Command-line host for the Xcode Cloud monitor.

This script should be run from the project root directory:
    python run.py sign-in KEY_ID ISSUER_ID path/to/AuthKey.p8
    python run.py watch
    python run.py logs BUILD_RUN_ID

Environment variables:
    XCODE_CLOUD_SECRETS_FILE: Where the API key is stored (default: ~/.xcode_cloud/secrets.env)
    XCODE_CLOUD_POLLING_INTERVAL_SECONDS: Polling interval (default: 30, minimum 10)
    XCODE_CLOUD_LOG_LEVEL: Logging level (default: INFO)
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from application.services.xcode_cloud import XcodeCloudService
from application.services.xcode_cloud.models.types import Credentials
from application.services.xcode_cloud.monitoring.notifications import Notifier
from common.auth.secret_store import DotenvSecretStore
from common.config.config import XCODE_CLOUD_LOG_LEVEL, XCODE_CLOUD_SECRETS_FILE

logger = logging.getLogger(__name__)


class ConsoleNotifier(Notifier):
    """Prints notifications to the terminal."""

    def info(self, message: str) -> None:
        print(f"ℹ️  {message}")

    def warning(self, message: str) -> None:
        print(f"⚠️  {message}")

    def error(self, message: str) -> None:
        print(f"❌ {message}", file=sys.stderr)


def create_service(args: argparse.Namespace) -> XcodeCloudService:
    return XcodeCloudService(
        secret_store=DotenvSecretStore(args.secrets_file),
        notifier=ConsoleNotifier(),
    )


async def sign_in(args: argparse.Namespace) -> int:
    private_key = Path(args.private_key_file).expanduser().read_text(encoding="utf-8")
    credentials = Credentials(
        key_id=args.key_id.strip(),
        issuer_id=args.issuer_id.strip(),
        private_key=private_key.strip(),
    )
    async with create_service(args) as service:
        return 0 if await service.sign_in(credentials) else 1


async def sign_out(args: argparse.Namespace) -> int:
    async with create_service(args) as service:
        await service.sign_out()
    return 0


async def watch(args: argparse.Namespace) -> int:
    """Poll until interrupted, printing the status summary after each refresh."""
    async with create_service(args) as service:
        if not await service.token_cache.is_authenticated():
            service.notifier.warning("Please sign in to Xcode Cloud first.")
            return 1

        def print_status() -> None:
            if service.status_bar.visible:
                print(service.status_bar.text)

        service.tree.on_did_change(print_status)
        await service.refresh_now()
        service.start()
        await asyncio.Event().wait()
    return 0


async def trigger(args: argparse.Namespace) -> int:
    async with create_service(args) as service:
        build_run = await service.trigger_build(args.workflow_id)
        if build_run is None:
            return 1
        print(f"Build #{build_run.attributes.number}: {service.build_url(build_run.id)}")
    return 0


async def cancel(args: argparse.Namespace) -> int:
    async with create_service(args) as service:
        return 0 if await service.cancel_build(args.build_run_id) else 1


async def tail_logs(args: argparse.Namespace) -> int:
    """Stream one build log to stdout until the build finishes."""
    async with create_service(args) as service:
        finished = asyncio.Event()
        printed = ""

        def on_change(uri: str) -> None:
            nonlocal printed
            session = service.logs.get_session(uri)
            if session is None:
                return
            content = session.content
            if content.startswith(printed):
                sys.stdout.write(content[len(printed):])
            else:
                sys.stdout.write("\n" + content)
            sys.stdout.flush()
            printed = content
            if session.is_complete:
                finished.set()

        service.logs.on_did_change(on_change)
        uri = await service.open_log(args.build_run_id)
        if uri is None:
            return 1
        session = service.logs.get_session(uri)
        if session is not None and not session.is_complete:
            await finished.wait()
    return 0


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(description="Monitor Xcode Cloud builds")
    parser.add_argument(
        "--secrets-file",
        default=XCODE_CLOUD_SECRETS_FILE,
        help=f"Secrets file holding the API key (default: {XCODE_CLOUD_SECRETS_FILE})",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    sign_in_parser = subparsers.add_parser("sign-in", help="Store an App Store Connect API key")
    sign_in_parser.add_argument("key_id", help="API key ID")
    sign_in_parser.add_argument("issuer_id", help="Issuer ID")
    sign_in_parser.add_argument("private_key_file", help="Path to the .p8 private key")

    subparsers.add_parser("sign-out", help="Remove the stored API key")
    subparsers.add_parser("watch", help="Poll builds until interrupted")

    trigger_parser = subparsers.add_parser("trigger", help="Start a build of a workflow")
    trigger_parser.add_argument("workflow_id", help="Workflow ID")

    cancel_parser = subparsers.add_parser("cancel", help="Cancel a running build")
    cancel_parser.add_argument("build_run_id", help="Build run ID")

    logs_parser = subparsers.add_parser("logs", help="Tail the log of a build run")
    logs_parser.add_argument("build_run_id", help="Build run ID")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    logging.basicConfig(
        level=XCODE_CLOUD_LOG_LEVEL,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )

    commands = {
        "sign-in": sign_in,
        "sign-out": sign_out,
        "watch": watch,
        "trigger": trigger,
        "cancel": cancel,
        "logs": tail_logs,
    }

    try:
        exit_code = asyncio.run(commands[args.command](args))
    except KeyboardInterrupt:
        print("\nStopped.")
        exit_code = 0
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
