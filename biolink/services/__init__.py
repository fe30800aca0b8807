"""Service layer for the biolink application.

This package contains the business logic of the click pipeline and of link
management. Services orchestrate repositories and the click buffer and
translate storage failures into domain exceptions.
"""

from biolink.services.analytics import AnalyticsCache, AnalyticsService
from biolink.services.click_queue import BufferedClickEntry, ClickQueue
from biolink.services.links import LinkService
from biolink.services.sync import AnalyticsSyncService
from biolink.services.tracking import ClickRecorder

__all__ = [
    "AnalyticsCache",
    "AnalyticsService",
    "AnalyticsSyncService",
    "BufferedClickEntry",
    "ClickQueue",
    "ClickRecorder",
    "LinkService",
]
