"""定时任务."""

from feedpager.scheduler.tasks import PollScheduler, SchedulerState, SweepStats

__all__ = [
    "PollScheduler",
    "SchedulerState",
    "SweepStats",
]
