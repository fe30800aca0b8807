"""Scheduler module for the biolink application.

This module provides scheduled task functionality using APScheduler.
"""

from biolink.scheduler.scheduler import SchedulerService, sync_analytics_job

__all__ = ["SchedulerService", "sync_analytics_job"]
