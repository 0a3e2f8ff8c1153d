"""API token SQLAlchemy model."""

from datetime import datetime

from sqlalchemy import Boolean, ForeignKey, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from linkdeck.core.database import Base, UTCDateTime, utcnow
from linkdeck.models.user import User


class APIToken(Base):
    """Long-lived credential for machine clients.

    Only the SHA-256 hash of the secret is stored. The secret itself is
    returned once, at creation.
    """

    __tablename__ = "api_tokens"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    token_hash: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        nullable=False,
        comment="SHA-256 hex digest of the secret",
    )
    token_prefix: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        comment="Leading characters of the secret, for identification",
    )
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    expires_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    last_used_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
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
    user: Mapped[User] = relationship(lazy="selectin")

    def is_usable(self, now: datetime) -> bool:
        """Active, unexpired and owned by an active user."""
        if not self.active or not self.user.active:
            return False
        return self.expires_at is None or self.expires_at > now

    def __repr__(self) -> str:
        return f"<APIToken {self.name} prefix={self.token_prefix}>"
