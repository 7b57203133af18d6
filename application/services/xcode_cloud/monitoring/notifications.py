"""
User-facing notifications.

The monitor never talks to a UI directly; it hands short messages to a
Notifier supplied by the host. LoggingNotifier is the headless default.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

from application.services.xcode_cloud.models.types import CompletionStatus
from application.services.xcode_cloud.monitoring.transition_watcher import BuildTransition
from common.config.config import XcodeCloudSettings

logger = logging.getLogger(__name__)


class Notifier(ABC):
    """Host notification surface."""

    @abstractmethod
    def info(self, message: str) -> None:
        pass

    @abstractmethod
    def warning(self, message: str) -> None:
        pass

    @abstractmethod
    def error(self, message: str) -> None:
        pass


class LoggingNotifier(Notifier):
    """Writes notifications to the application log."""

    def __init__(self, name: str = "xcode_cloud.notifications"):
        self._logger = logging.getLogger(name)

    def info(self, message: str) -> None:
        self._logger.info(message)

    def warning(self, message: str) -> None:
        self._logger.warning(message)

    def error(self, message: str) -> None:
        self._logger.error(message)


def completion_message(transition: BuildTransition) -> Optional[str]:
    """Message for a completed build, or None when nothing should be shown."""
    attrs = transition.build_run.attributes
    branch = transition.build_run.branch_name
    subject = f"Build #{attrs.number}{f' ({branch})' if branch else ''}"

    status = attrs.completion_status
    if status == CompletionStatus.SUCCEEDED:
        return f"{subject} succeeded."
    if status in (CompletionStatus.FAILED, CompletionStatus.ERRORED):
        return f"{subject} failed."
    if status == CompletionStatus.CANCELED:
        return f"{subject} was canceled."
    return None


class BuildCompletionNotifier:
    """Turns build transitions into notifications."""

    def __init__(self, notifier: Notifier, settings: XcodeCloudSettings):
        self.notifier = notifier
        self.settings = settings

    def __call__(self, transition: BuildTransition) -> None:
        self.notify(transition)

    def notify(self, transition: BuildTransition) -> None:
        if not self.settings.notify_on_build_complete:
            logger.debug("Build completion notifications are disabled")
            return

        message = completion_message(transition)
        if message is None:
            return

        status = transition.completion_status
        if status == CompletionStatus.SUCCEEDED:
            self.notifier.info(message)
        elif status == CompletionStatus.CANCELED:
            self.notifier.warning(message)
        else:
            self.notifier.error(message)
