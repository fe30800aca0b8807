"""API request and response schemas.

This module contains Pydantic models for API request validation
and response serialization.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, TypeAdapter, ValidationError, field_validator

from biolink.models.link import LinkType

_http_url = TypeAdapter(HttpUrl)


def _validate_http_url(value: str) -> str:
    # Validated as a URL, stored exactly as given
    try:
        _http_url.validate_python(value)
    except ValidationError:
        raise ValueError("must be an absolute http or https URL")
    return value


class LinkCreateRequest(BaseModel):
    """Request schema for creating a link."""
    url: str = Field(..., max_length=2048)
    title: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = Field(None, max_length=1024)
    image_url: Optional[str] = Field(None, max_length=2048)
    category: Optional[str] = Field(None, max_length=64)
    type: LinkType = LinkType.LINK
    is_sensitive: bool = False
    password: Optional[str] = Field(None, max_length=128, description="Protect the link with a password")

    @field_validator("url")
    @classmethod
    def validate_url(cls, v):
        return _validate_http_url(v)


class LinkUpdateRequest(BaseModel):
    """Request schema for a partial link update. Only sent fields change."""
    url: Optional[str] = Field(None, max_length=2048)
    title: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = Field(None, max_length=1024)
    image_url: Optional[str] = Field(None, max_length=2048)
    category: Optional[str] = Field(None, max_length=64)
    type: Optional[LinkType] = None
    is_sensitive: Optional[bool] = None
    password: Optional[str] = Field(None, max_length=128, description="Empty string removes protection")

    @field_validator("url")
    @classmethod
    def validate_url(cls, v):
        return _validate_http_url(v) if v is not None else v


class LinkResponse(BaseModel):
    """Response schema for a link. The password hash is never exposed."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    url: str
    title: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    category: Optional[str] = None
    type: LinkType
    is_sensitive: bool
    is_protected: bool
    sort_order: int
    clicks: int
    created_at: datetime
    updated_at: datetime


class ReorderItem(BaseModel):
    id: str
    sort_order: int = Field(..., ge=0)


class ReorderRequest(BaseModel):
    """Request schema for moving links to new positions."""
    orders: List[ReorderItem]


class UnlockRequest(BaseModel):
    password: str


class UnlockResponse(BaseModel):
    url: str


class DeleteResponse(BaseModel):
    success: bool


class DeviceCount(BaseModel):
    device: str
    count: int


class ReferrerCount(BaseModel):
    referrer: str
    count: int


class CountryCount(BaseModel):
    country: str
    count: int


class AnalyticsResponse(BaseModel):
    """Response schema for link analytics."""
    totalClicks: int
    liveClicks: Optional[int] = None
    dailySeries: Dict[str, int]
    devices: List[DeviceCount]
    referrers: List[ReferrerCount]
    locations: List[CountryCount]


class SyncResponse(BaseModel):
    """Response schema for one run of the sync worker."""
    message: str
    popped: int
    inserted: int
    discarded: int
    increments: Dict[str, int]


class SyncErrorResponse(BaseModel):
    error: str
    details: str


class ErrorResponse(BaseModel):
    """Response schema for errors."""
    detail: str
