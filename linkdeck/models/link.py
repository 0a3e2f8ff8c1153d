"""Link SQLAlchemy model and its tag association table."""

import enum
from datetime import datetime

from sqlalchemy import Column, Enum, ForeignKey, Integer, String, Table, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from linkdeck.core.database import Base, UTCDateTime, utcnow
from linkdeck.models.category import Category
from linkdeck.models.tag import Tag


class LinkStatus(str, enum.Enum):
    """Publication state of a link."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    ERROR = "error"


link_tags = Table(
    "link_tags",
    Base.metadata,
    Column("link_id", ForeignKey("links.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True, index=True),
)


class Link(Base):
    """Link model for curated external URLs."""

    __tablename__ = "links"

    id: Mapped[int] = mapped_column(primary_key=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    url: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Absolute http(s) URL",
    )
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    icon: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    status: Mapped[LinkStatus] = mapped_column(
        Enum(
            LinkStatus,
            native_enum=False,
            length=20,
            values_callable=lambda statuses: [status.value for status in statuses],
        ),
        default=LinkStatus.ACTIVE,
        nullable=False,
        index=True,
    )
    click_count: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        comment="Total click count (denormalized for quick access)",
    )
    sort_order: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        comment="Display position within the category",
    )
    category_id: Mapped[int] = mapped_column(
        ForeignKey("categories.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    last_checked_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime,
        nullable=True,
        comment="Written by the external link-health checker",
    )
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    # Relationships
    category: Mapped[Category] = relationship(lazy="selectin")
    tags: Mapped[list[Tag]] = relationship(
        secondary=link_tags,
        lazy="selectin",
        order_by=Tag.name,
    )

    def __repr__(self) -> str:
        return f"<Link {self.title} -> {self.url[:50]}>"
