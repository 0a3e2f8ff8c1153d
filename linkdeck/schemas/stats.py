"""Pydantic schemas for directory statistics."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from linkdeck.schemas.link import LinkSummary


class ClickWindows(BaseModel):
    """Click counts over the standard windows."""

    total: int = Field(description="All recorded clicks")
    today: int = Field(description="Clicks since local midnight")
    this_week: int = Field(description="Clicks in the last 7 days")
    this_month: int = Field(description="Clicks in the last 30 days")


class PublicStats(BaseModel):
    """Directory overview shown to anonymous visitors."""

    total_links: int
    total_categories: int
    total_tags: int
    clicks: ClickWindows
    popular_links: list[LinkSummary]


class RecentClick(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    link_id: int
    user_id: int | None
    ip_address: str | None
    clicked_at: datetime


class DashboardStats(BaseModel):
    """Full admin dashboard snapshot."""

    total_links: int
    active_links: int
    inactive_links: int
    error_links: int
    total_categories: int
    active_categories: int
    total_tags: int
    total_users: int
    clicks: ClickWindows
    popular_links: list[LinkSummary]
    recent_clicks: list[RecentClick]
    generated_at: datetime
