"""Schemas for the check trigger endpoints."""
from pydantic import BaseModel, Field


class CheckSiteRequest(BaseModel):
    """Body of an on-demand single site check."""
    site_id: int


class TestEmailRequest(BaseModel):
    """Body of a test email request."""
    notification_email: str = Field(..., min_length=3)


class TestEmailResponse(BaseModel):
    success: bool
