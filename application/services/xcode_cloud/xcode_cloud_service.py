"""
Main Xcode Cloud Service - Unified facade for the build monitor.

This service provides a single entry point for:
- Sign-in / sign-out with an App Store Connect API key
- Background polling of build runs with backoff and visibility gating
- Tree, status bar and completion notification data for the host
- Triggering and canceling builds
- Live build log documents
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, List, Optional

import httpx

from application.services.xcode_cloud.api.ci_operations import CiOperations
from application.services.xcode_cloud.api.client import AppStoreConnectAPIClient
from application.services.xcode_cloud.auth.token_cache import TokenCache
from application.services.xcode_cloud.exceptions import XcodeCloudError
from application.services.xcode_cloud.formatting import build_run_url
from application.services.xcode_cloud.logs.log_content_provider import LogContentProvider
from application.services.xcode_cloud.models.types import CiBuildRun, Credentials
from application.services.xcode_cloud.monitoring.notifications import (
    BuildCompletionNotifier,
    LoggingNotifier,
    Notifier,
)
from application.services.xcode_cloud.monitoring.transition_watcher import TransitionWatcher
from application.services.xcode_cloud.polling.scheduler import PollScheduler
from application.services.xcode_cloud.status.status_bar import StatusBarModel
from application.services.xcode_cloud.tree.build_tree import BuildTreeProvider
from common.auth.secret_store import SecretStore
from common.config.config import (
    XCODE_CLOUD_API_BASE_URL,
    XCODE_CLOUD_HTTP_TIMEOUT_SECONDS,
    XcodeCloudSettings,
)

logger = logging.getLogger(__name__)

SIGN_IN_FIRST_MESSAGE = "Please sign in to Xcode Cloud first."


class XcodeCloudService:
    """
    Unified Xcode Cloud service wiring authentication, API access, polling
    and presentation state.

    All state lives in the component instances created here; the host keeps
    one service per session.
    """

    def __init__(
        self,
        secret_store: SecretStore,
        settings: Optional[XcodeCloudSettings] = None,
        notifier: Optional[Notifier] = None,
        base_url: str = XCODE_CLOUD_API_BASE_URL,
        timeout: float = XCODE_CLOUD_HTTP_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initialize Xcode Cloud service.

        Args:
            secret_store: Storage for the API key
            settings: Host options (defaults to environment)
            notifier: Host notification surface (defaults to logging)
            base_url: App Store Connect API base URL
            timeout: HTTP timeout in seconds
            transport: Optional httpx transport shared by all requests
            clock: Epoch-seconds clock used for token expiry
            sleep: Timer primitive used by polling and log tailing
        """
        self.settings = settings or XcodeCloudSettings.from_env()
        self.notifier = notifier or LoggingNotifier()

        self.token_cache = TokenCache(
            secret_store, clock=clock, base_url=base_url, transport=transport
        )
        self.api_client = AppStoreConnectAPIClient(
            self.token_cache, base_url=base_url, timeout=timeout, transport=transport
        )
        self.operations = CiOperations(client=self.api_client)

        self.tree = BuildTreeProvider(self.operations, self.token_cache, self.notifier)
        self.status_bar = StatusBarModel(self.settings)
        self.watcher = TransitionWatcher()
        self.completion_notifier = BuildCompletionNotifier(self.notifier, self.settings)
        self.watcher.on_transition(self.completion_notifier)
        self.logs = LogContentProvider(self.operations, sleep=sleep)

        self.scheduler = PollScheduler(
            self._refresh,
            lambda: self.settings.polling_interval_seconds,
            sleep=sleep,
        )

    # --- Lifecycle ---

    def start(self) -> None:
        """Begin background polling."""
        logger.info(
            f"Starting Xcode Cloud monitor (interval {self.settings.polling_interval_seconds}s)"
        )
        self.scheduler.start()

    def set_visible(self, visible: bool) -> None:
        self.scheduler.set_visible(visible)

    async def dispose(self) -> None:
        """Stop polling, close log sessions and release the HTTP client."""
        self.scheduler.dispose()
        self.logs.dispose()
        await self.api_client.close()
        logger.info("Xcode Cloud monitor disposed")

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.dispose()

    # --- Commands ---

    async def sign_in(self, credentials: Credentials) -> bool:
        """Validate and store an API key.

        Args:
            credentials: API key entered by the user

        Returns:
            True when the key was accepted and stored
        """
        try:
            await self.token_cache.sign_in(credentials)
        except XcodeCloudError as e:
            logger.error(f"Sign-in failed: {e}")
            self.notifier.error(str(e))
            return False

        self.notifier.info("Successfully signed in to Xcode Cloud.")
        self.scheduler.reset_backoff()
        self.tree.refresh()
        return True

    async def sign_out(self) -> None:
        await self.token_cache.sign_out()
        self.status_bar.hide()
        self.notifier.info("Signed out of Xcode Cloud.")
        self.tree.refresh()

    async def trigger_build(self, workflow_id: str) -> Optional[CiBuildRun]:
        """Start a build of a workflow.

        Args:
            workflow_id: Workflow to build

        Returns:
            The new build run, or None if signed out or the request failed
        """
        if not await self.token_cache.is_authenticated():
            self.notifier.warning(SIGN_IN_FIRST_MESSAGE)
            return None

        try:
            build_run = await self.operations.trigger_build_run(workflow_id)
        except XcodeCloudError as e:
            logger.error(f"Failed to trigger build: {e}")
            self.notifier.error(f"Failed to trigger build: {e}")
            return None

        self.notifier.info("Build triggered successfully.")
        self.tree.refresh()
        return build_run

    async def cancel_build(self, build_run_id: str) -> bool:
        """Cancel a running build.

        Args:
            build_run_id: Build run to cancel

        Returns:
            True when the API accepted the cancellation
        """
        if not await self.token_cache.is_authenticated():
            self.notifier.warning(SIGN_IN_FIRST_MESSAGE)
            return False

        try:
            await self.operations.cancel_build_run(build_run_id)
        except XcodeCloudError as e:
            logger.error(f"Failed to cancel build: {e}")
            self.notifier.error(f"Failed to cancel build: {e}")
            return False

        self.notifier.info("Build canceled.")
        self.tree.refresh()
        return True

    async def refresh_now(self) -> None:
        """Refresh immediately and clear any polling backoff."""
        self.scheduler.reset_backoff()
        try:
            await self._refresh()
        except XcodeCloudError as e:
            logger.error(f"Refresh failed: {e}")
            self.notifier.error(str(e))

    async def open_log(self, build_run_id: str, build_number: Optional[int] = None) -> Optional[str]:
        """Open the live log document of a build run.

        Args:
            build_run_id: Build run ID
            build_number: Build number for the document label (fetched if omitted)

        Returns:
            Document URI, or None if the build could not be resolved
        """
        if build_number is None:
            try:
                build_run = await self.operations.get_build_run(build_run_id)
            except XcodeCloudError as e:
                logger.error(f"Failed to open build log: {e}")
                self.notifier.error(str(e))
                return None
            build_number = build_run.attributes.number

        return await self.logs.open_build_log(build_run_id, build_number)

    def build_url(self, build_run_id: str) -> str:
        return build_run_url(build_run_id)

    # --- Background refresh ---

    async def fetch_all_build_runs(self) -> List[CiBuildRun]:
        """Collect the latest build runs of every workflow of every product."""
        build_runs: List[CiBuildRun] = []
        for product in await self.operations.list_products():
            for workflow in await self.operations.list_workflows(product.id):
                build_runs.extend(await self.operations.list_build_runs(workflow.id))
        return build_runs

    async def _refresh(self) -> None:
        if not await self.token_cache.is_authenticated():
            self.status_bar.hide()
            logger.debug("Skipping refresh: not signed in")
            return

        build_runs = await self.fetch_all_build_runs()
        logger.debug(f"Refreshed {len(build_runs)} build runs")

        self.status_bar.update(build_runs)
        self.watcher.observe(build_runs)
        self.tree.refresh()
