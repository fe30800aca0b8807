"""Exceptions for the service layer.

This module contains the exception hierarchy for the service layer,
providing domain-specific exceptions that abstract underlying implementation details.
"""


class ServiceError(Exception):
    """Base exception for all service-level errors."""
    pass


class LinkError(ServiceError):
    """Base exception for link-related errors."""
    pass


class LinkNotFoundError(LinkError):
    """The link does not exist, or is not owned by the requesting user."""
    pass


class LinkUpdateError(LinkError):
    """Error occurred while creating, updating or deleting a link."""
    pass


class LinkReorderError(LinkError):
    """The requested ordering is invalid or could not be applied."""
    pass


class InvalidLinkPasswordError(LinkError):
    """The password supplied to unlock a protected link is wrong."""
    pass


class AnalyticsError(ServiceError):
    """Base exception for analytics errors."""
    pass


class AnalyticsRetrievalError(AnalyticsError):
    """Error occurred while aggregating click analytics."""
    pass


class SyncError(ServiceError):
    """Base exception for buffer synchronisation errors."""
    pass


class AnalyticsSyncError(SyncError):
    """Draining the click buffer into the database failed."""
    pass
