"""Routes package initialization.

This module exports the route collection for the application.
"""

from fastapi import APIRouter

from biolink.api.routes import analytics, click, cron, health, links
from biolink.core.config import settings

# Create root router
api_router = APIRouter()

# Every route lives under the API prefix, the click endpoint included
for module in (click, links, analytics, cron, health):
    api_router.include_router(module.router, prefix=settings.API_PREFIX)

__all__ = ["api_router"]
