"""
Registry of open build log documents.

Each document is addressed by a URI of the form
``xcodecloud-log://build/{build_run_id}?label=Build%20%23{number}%20Log`` and
backed by one LogTailSession. Reopening a build replaces its session.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, List, Optional
from urllib.parse import urlsplit

from application.services.xcode_cloud.api.ci_operations import CiOperations
from application.services.xcode_cloud.logs.log_tail_session import (
    LOADING_TEXT,
    LogTailSession,
)
from common.constants import LOG_TAIL_INTERVAL_SECONDS

logger = logging.getLogger(__name__)

LOG_URI_SCHEME = "xcodecloud-log"


def build_log_uri(build_run_id: str, build_number: int) -> str:
    return f"{LOG_URI_SCHEME}://build/{build_run_id}?label=Build%20%23{build_number}%20Log"


def _session_key(uri: str) -> str:
    return urlsplit(uri).path.lstrip("/")


class LogContentProvider:
    """Maps log document URIs to live tail sessions."""

    def __init__(
        self,
        operations: CiOperations,
        tail_interval_seconds: float = LOG_TAIL_INTERVAL_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.operations = operations
        self.tail_interval_seconds = tail_interval_seconds
        self._sleep = sleep
        self._sessions: Dict[str, LogTailSession] = {}
        self._listeners: List[Callable[[str], None]] = []

    def on_did_change(self, listener: Callable[[str], None]) -> Callable[[], None]:
        """Register a listener called with the URI of each changed document.

        Returns:
            A function that unregisters the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def open_build_log(self, build_run_id: str, build_number: int) -> str:
        """
        Open (or reopen) the log document of a build run.

        Args:
            build_run_id: Build run ID
            build_number: Build number shown in the document label

        Returns:
            The document URI
        """
        uri = build_log_uri(build_run_id, build_number)
        key = _session_key(uri)

        previous = self._sessions.pop(key, None)
        if previous is not None:
            previous.dispose()

        session = LogTailSession(
            self.operations,
            build_run_id,
            on_change=lambda _session: self._fire(uri),
            interval_seconds=self.tail_interval_seconds,
            sleep=self._sleep,
        )
        self._sessions[key] = session
        logger.info(f"Opening build log for build #{build_number}")
        await session.open()
        return uri

    def provide_content(self, uri: str) -> str:
        session = self._sessions.get(_session_key(uri))
        if session is None:
            return LOADING_TEXT
        return session.content

    def get_session(self, uri: str) -> Optional[LogTailSession]:
        return self._sessions.get(_session_key(uri))

    @property
    def open_documents(self) -> List[str]:
        return list(self._sessions.keys())

    def close(self, uri: str) -> None:
        session = self._sessions.pop(_session_key(uri), None)
        if session is not None:
            session.dispose()

    def dispose(self) -> None:
        for session in self._sessions.values():
            session.dispose()
        self._sessions.clear()
        self._listeners.clear()

    def _fire(self, uri: str) -> None:
        for listener in list(self._listeners):
            try:
                listener(uri)
            except Exception as e:
                logger.error(f"Log change listener failed: {e}")
