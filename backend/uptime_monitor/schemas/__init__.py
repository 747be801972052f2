"""Pydantic schemas for API request/response models."""
from .checks import (
    CheckSiteRequest,
    TestEmailRequest,
    TestEmailResponse,
)

__all__ = [
    "CheckSiteRequest",
    "TestEmailRequest",
    "TestEmailResponse",
]
