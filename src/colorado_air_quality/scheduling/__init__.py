"""Daily collection scheduling."""

from .scheduler import CollectionScheduler, SchedulerState, next_collection_time

__all__ = ["CollectionScheduler", "SchedulerState", "next_collection_time"]
