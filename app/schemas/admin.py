"""
Admin and demo API request/response schemas.
"""

from typing import Any

from pydantic import BaseModel


class LeadListResponse(BaseModel):
    """Response schema for the lead listing."""

    stats: dict[str, Any]
    leads: list[dict[str, Any]]


class LeadDetailResponse(BaseModel):
    """Response schema for a single lead."""

    lead: dict[str, Any]
    summary: str


class LeadActionResponse(BaseModel):
    """Response schema for admin actions (confirm/delete)."""

    success: bool
    message: str
    exported: bool | None = None


class DemoConversationRequest(BaseModel):
    """Request schema for running a text message through the bot (demo mode)."""

    phone: str
    message: str
