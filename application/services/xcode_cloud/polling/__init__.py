"""Background polling for Xcode Cloud build state."""

from application.services.xcode_cloud.polling.scheduler import (
    PollScheduler,
    SchedulerState,
    compute_delay_ms,
)

__all__ = ["PollScheduler", "SchedulerState", "compute_delay_ms"]
