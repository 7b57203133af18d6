"""Status bar summary of the latest builds."""

from application.services.xcode_cloud.status.status_bar import StatusBarModel

__all__ = ["StatusBarModel"]
