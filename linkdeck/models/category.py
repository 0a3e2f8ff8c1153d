"""Category SQLAlchemy model."""

from datetime import datetime

from sqlalchemy import Boolean, Index, Integer, String, Text, func, text
from sqlalchemy.orm import Mapped, mapped_column

from linkdeck.core.database import Base, UTCDateTime, utcnow

DEFAULT_CATEGORY_ICON = "📁"
DEFAULT_CATEGORY_COLOR = "#007bff"


class Category(Base):
    """Category model grouping links for display.

    Active categories hold a dense display order (1..n). Inactive ones keep
    their last sort_order but take no part in ordering, which is why the
    uniqueness index below is partial.
    """

    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(
        String(100),
        unique=True,
        nullable=False,
    )
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    icon: Mapped[str] = mapped_column(
        String(50),
        default=DEFAULT_CATEGORY_ICON,
        nullable=False,
    )
    color: Mapped[str] = mapped_column(
        String(7),
        default=DEFAULT_CATEGORY_COLOR,
        nullable=False,
        comment="Hex color, #rrggbb",
    )
    sort_order: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        comment="Display position among active categories",
    )
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
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

    __table_args__ = (
        Index(
            "uq_categories_active_sort_order",
            "sort_order",
            unique=True,
            postgresql_where=text("active"),
            sqlite_where=text("active = 1"),
        ),
    )

    def __repr__(self) -> str:
        return f"<Category {self.name} order={self.sort_order}>"
