"""Favorite and click SQLAlchemy models."""

from datetime import datetime

from sqlalchemy import ForeignKey, Index, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from linkdeck.core.database import Base, UTCDateTime, utcnow


class Favorite(Base):
    """A user's bookmark of a link. At most one row per (user, link)."""

    __tablename__ = "favorites"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    link_id: Mapped[int] = mapped_column(
        ForeignKey("links.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (UniqueConstraint("user_id", "link_id"),)

    def __repr__(self) -> str:
        return f"<Favorite user={self.user_id} link={self.link_id}>"


class ClickRecord(Base):
    """Click model for storing raw click events.

    Each row represents a single recorded click. Rows are append-only and
    deliberately carry no foreign key so they outlive deleted links.
    """

    __tablename__ = "click_records"

    id: Mapped[int] = mapped_column(primary_key=True)
    link_id: Mapped[int] = mapped_column(
        nullable=False,
        index=True,
        comment="Id of the clicked link (references links.id)",
    )
    user_id: Mapped[int | None] = mapped_column(
        nullable=True,
        comment="Authenticated user that clicked, if any",
    )
    ip_address: Mapped[str | None] = mapped_column(
        String(45),
        nullable=True,
        comment="Client IP address",
    )
    user_agent: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="HTTP User-Agent header",
    )
    referer: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="HTTP Referer header",
    )
    clicked_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=utcnow,
        nullable=False,
        index=True,
        comment="Timestamp when the click occurred",
    )

    __table_args__ = (
        Index("ix_click_records_link_id_clicked_at", "link_id", "clicked_at"),
    )

    def __repr__(self) -> str:
        return f"<ClickRecord {self.id} link={self.link_id} at={self.clicked_at}>"
