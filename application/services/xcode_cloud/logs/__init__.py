"""
Build log documents: rendering, live tailing and the per-URI registry.
"""

from application.services.xcode_cloud.logs.log_content_provider import (
    LOG_URI_SCHEME,
    LogContentProvider,
    build_log_uri,
)
from application.services.xcode_cloud.logs.log_tail_session import (
    LogSessionState,
    LogTailSession,
)
from application.services.xcode_cloud.logs.rendering import (
    LogLineClassification,
    classify_log_lines,
    render_log_document,
)

__all__ = [
    "LOG_URI_SCHEME",
    "LogContentProvider",
    "LogLineClassification",
    "LogSessionState",
    "LogTailSession",
    "build_log_uri",
    "classify_log_lines",
    "render_log_document",
]
