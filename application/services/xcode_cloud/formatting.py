"""Display helpers shared by the tree, status bar, notifications and log documents."""

from datetime import datetime, timezone
from typing import Optional

from application.services.xcode_cloud.models.types import CompletionStatus, ExecutionProgress
from common.config.config import XCODE_CLOUD_WEB_BASE_URL


def parse_timestamp(value: str) -> datetime:
    """Parse an App Store Connect ISO 8601 timestamp into an aware UTC datetime."""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_timestamp(value: Optional[str]) -> str:
    """Render a timestamp as 'YYYY-MM-DD HH:MM:SS UTC'; unparsable input is returned as is."""
    if not value:
        return ""
    try:
        return parse_timestamp(value).strftime("%Y-%m-%d %H:%M:%S UTC")
    except ValueError:
        return value


def format_duration(
    start_date: Optional[str],
    end_date: Optional[str] = None,
    now: Optional[datetime] = None,
) -> str:
    """
    Format the elapsed time between two timestamps.

    Args:
        start_date: ISO start timestamp; no start yields an empty string
        end_date: ISO end timestamp; defaults to now for builds still in progress
        now: Reference time used when end_date is missing

    Returns:
        '45s' below a minute, otherwise '5m 30s'
    """
    if not start_date:
        return ""
    try:
        start = parse_timestamp(start_date)
        end = parse_timestamp(end_date) if end_date else now or datetime.now(timezone.utc)
    except ValueError:
        return ""
    seconds = max(int((end - start).total_seconds()), 0)
    minutes, remaining_seconds = divmod(seconds, 60)
    if minutes > 0:
        return f"{minutes}m {remaining_seconds}s"
    return f"{seconds}s"


def format_bytes(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size / (1024 * 1024):.1f} MB"


def build_status_icon(
    progress: ExecutionProgress, completion: Optional[CompletionStatus] = None
) -> str:
    if progress == ExecutionProgress.COMPLETE:
        if completion == CompletionStatus.SUCCEEDED:
            return "✅"
        if completion in (CompletionStatus.FAILED, CompletionStatus.ERRORED):
            return "❌"
        if completion == CompletionStatus.CANCELED:
            return "🚫"
        if completion == CompletionStatus.SKIPPED:
            return "⏭️"
        return "❓"
    if progress == ExecutionProgress.RUNNING:
        return "🔄"
    if progress in (ExecutionProgress.PENDING, ExecutionProgress.WAITING):
        return "⏳"
    return "❓"


def build_run_url(build_run_id: str) -> str:
    """Link to a build run in the App Store Connect web UI."""
    return f"{XCODE_CLOUD_WEB_BASE_URL}/teams/builds/{build_run_id}"
