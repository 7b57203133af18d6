"""
Live log tailing for a single build run.

A session loads the build run once, then re-fetches and re-renders the whole
document every few seconds while the build is running. When the build stops
running the last refresh is the final render and the session turns terminal.
"""

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Tuple

from application.services.xcode_cloud.api.ci_operations import CiOperations
from application.services.xcode_cloud.exceptions import XcodeCloudError
from application.services.xcode_cloud.logs.rendering import render_log_document
from application.services.xcode_cloud.models.types import CiArtifact, CiBuildRun
from common.constants import LOG_TAIL_INTERVAL_SECONDS

logger = logging.getLogger(__name__)

LOADING_TEXT = "Loading..."


class LogSessionState(Enum):
    LOADING = "loading"
    ACTIVE = "active"
    TERMINAL = "terminal"


class LogTailSession:
    """Keeps the rendered log document of one build run up to date."""

    def __init__(
        self,
        operations: CiOperations,
        build_run_id: str,
        on_change: Optional[Callable[["LogTailSession"], None]] = None,
        interval_seconds: float = LOG_TAIL_INTERVAL_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize the session.

        Args:
            operations: CI operations used for fetching
            build_run_id: Build run to follow
            on_change: Called with the session after each content replacement
            interval_seconds: Delay between tail refreshes
            sleep: Timer primitive (replaced in tests)
        """
        self.operations = operations
        self.build_run_id = build_run_id
        self.interval_seconds = interval_seconds
        self._on_change = on_change
        self._sleep = sleep

        self.content = LOADING_TEXT
        self.state = LogSessionState.LOADING
        self._task: Optional[asyncio.Task] = None
        self._fetching = False
        self._disposed = False

    @property
    def is_complete(self) -> bool:
        return self.state == LogSessionState.TERMINAL

    @property
    def is_tailing(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def disposed(self) -> bool:
        return self._disposed

    async def open(self) -> None:
        """Perform the initial load and start tailing if the build is running.

        A failure here ends the session immediately with an explanatory
        document instead of raising.
        """
        try:
            build_run, content = await self._fetch_and_render()
        except Exception as e:
            logger.error(f"Failed to load logs for build run {self.build_run_id}: {e}")
            if self._disposed:
                return
            self.state = LogSessionState.TERMINAL
            self._replace_content(f"Failed to load logs: {e}")
            return

        if self._disposed:
            return

        if build_run.is_running:
            self.state = LogSessionState.ACTIVE
            self._task = asyncio.get_running_loop().create_task(self._tail())
            logger.info(f"Tailing logs for build #{build_run.attributes.number}")
        else:
            self.state = LogSessionState.TERMINAL
        self._replace_content(content)

    def dispose(self) -> None:
        """Stop tailing. Safe to call more than once.

        A refresh already waiting on the network is not aborted; its result is
        dropped when it arrives.
        """
        if self._disposed:
            return
        self._disposed = True
        if self._task is not None and not self._task.done() and not self._fetching:
            self._task.cancel()
        self._task = None

    async def _tail(self) -> None:
        while self.state == LogSessionState.ACTIVE and not self._disposed:
            await self._sleep(self.interval_seconds)
            if self._disposed:
                return

            try:
                build_run, content = await self._fetch_and_render()
            except Exception as e:
                logger.warning(f"Log tailing error for build run {self.build_run_id}: {e}")
                continue

            if self._disposed:
                return

            if not build_run.is_running:
                self.state = LogSessionState.TERMINAL
                logger.info(
                    f"Build #{build_run.attributes.number} finished; stopped tailing logs"
                )
            self._replace_content(content)

    async def _fetch_and_render(self) -> Tuple[CiBuildRun, str]:
        self._fetching = True
        try:
            build_run = await self.operations.get_build_run(self.build_run_id)
            actions = await self.operations.list_build_actions(self.build_run_id)
            artifacts: List[CiArtifact] = []
            if not build_run.is_running:
                artifacts = await self._fetch_artifacts()
        finally:
            self._fetching = False
        return build_run, render_log_document(build_run, actions, artifacts)

    async def _fetch_artifacts(self) -> List[CiArtifact]:
        try:
            return await self.operations.list_artifacts(self.build_run_id)
        except XcodeCloudError as e:
            logger.warning(f"Artifacts unavailable for build run {self.build_run_id}: {e}")
            return []

    def _replace_content(self, content: str) -> None:
        self.content = content
        if self._on_change is not None:
            self._on_change(self)
