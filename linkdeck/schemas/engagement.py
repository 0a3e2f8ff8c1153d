"""Pydantic schemas for clicks and favorites."""

from pydantic import BaseModel


class ClickResult(BaseModel):
    link_id: int
    click_count: int


class FavoriteState(BaseModel):
    """Resulting favorite state. ``changed`` is False for no-op requests."""

    link_id: int
    favorited: bool
    changed: bool
