"""
Build monitoring: transition detection and completion notifications.
"""

from application.services.xcode_cloud.monitoring.notifications import (
    BuildCompletionNotifier,
    LoggingNotifier,
    Notifier,
    completion_message,
)
from application.services.xcode_cloud.monitoring.transition_watcher import (
    BuildTransition,
    TransitionWatcher,
    build_state_key,
)

__all__ = [
    "BuildCompletionNotifier",
    "BuildTransition",
    "LoggingNotifier",
    "Notifier",
    "TransitionWatcher",
    "build_state_key",
    "completion_message",
]
