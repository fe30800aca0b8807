"""API package for the biolink application.

This package contains the API layer components including routes,
request/response schemas, and dependency providers.
"""

from biolink.api.routes import api_router

__all__ = ["api_router"]
