from .runner import SchedulerRunner

__all__ = ["SchedulerRunner"]
