"""
Status bar summary.

Condenses the latest batch of build runs into a one-line summary: the number
of running builds, otherwise the outcome of the most recently finished one.
"""

import logging
from typing import Iterable, List, Optional

from application.services.xcode_cloud.formatting import parse_timestamp
from application.services.xcode_cloud.models.types import (
    CiBuildRun,
    CompletionStatus,
    ExecutionProgress,
)
from common.config.config import XcodeCloudSettings

logger = logging.getLogger(__name__)

DEFAULT_TEXT = "☁ Xcode Cloud"
DEFAULT_TOOLTIP = "Xcode Cloud"


def _finished_at(build_run: CiBuildRun):
    attrs = build_run.attributes
    return parse_timestamp(attrs.finished_date or attrs.created_date)


def most_recent_completed(build_runs: Iterable[CiBuildRun]) -> Optional[CiBuildRun]:
    completed = [
        run
        for run in build_runs
        if run.attributes.execution_progress == ExecutionProgress.COMPLETE
    ]
    if not completed:
        return None
    return max(completed, key=_finished_at)


class StatusBarModel:
    """Text, tooltip and visibility of the status bar item."""

    def __init__(self, settings: XcodeCloudSettings):
        self.settings = settings
        self.text = DEFAULT_TEXT
        self.tooltip = DEFAULT_TOOLTIP
        self.visible = settings.show_status_bar_item

    def hide(self) -> None:
        self.visible = False

    def update(self, build_runs: Iterable[CiBuildRun]) -> None:
        """
        Recompute the summary from one refresh batch.

        Args:
            build_runs: Every build run fetched by the refresh
        """
        if not self.settings.show_status_bar_item:
            self.hide()
            return

        runs: List[CiBuildRun] = list(build_runs)
        running = [run for run in runs if run.is_running]

        if running:
            self.text = f"☁ {len(running)} running"
            self.tooltip = f"Xcode Cloud: {len(running)} build(s) running"
        else:
            latest = most_recent_completed(runs)
            if latest is not None:
                status = latest.attributes.completion_status
                icon = "✅" if status == CompletionStatus.SUCCEEDED else "❌"
                label = status.value.lower() if status else "unknown"
                self.text = f"☁ Last: {icon} {label}"
                self.tooltip = f"Xcode Cloud: Last build {label}"
            else:
                self.text = DEFAULT_TEXT
                self.tooltip = DEFAULT_TOOLTIP

        self.visible = True
        logger.debug(f"Status bar updated: {self.text}")
