"""
Provider SQLAlchemy model for credentialing.
"""
import enum

from sqlalchemy import String, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database.base import Base, TimestampMixin
from app.utils import generate_ulid


class ProviderStatus(str, enum.Enum):
    """Lifecycle of a provider profile."""
    PENDING = "pending"
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class Provider(Base, TimestampMixin):
    """
    Clinical provider profile.
    
    Attributes:
        id: ULID primary key
        user_id: Owning user; at most one provider profile per user
        npi: 10-digit National Provider Identifier
        specialty: Clinical specialty
        status: Starts pending; changed by admin review or affiliation approval
    """
    __tablename__ = "providers"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    user_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
        index=True
    )
    npi: Mapped[str] = mapped_column(String(10), nullable=False, index=True)
    specialty: Mapped[str] = mapped_column(String(100), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(20))
    address: Mapped[str | None] = mapped_column(String(255))
    city: Mapped[str | None] = mapped_column(String(100))
    state: Mapped[str | None] = mapped_column(String(50))
    zip: Mapped[str | None] = mapped_column(String(20))
    status: Mapped[ProviderStatus] = mapped_column(
        SQLEnum(ProviderStatus),
        default=ProviderStatus.PENDING,
        nullable=False,
        index=True
    )

    user = relationship("User", lazy="selectin")

    def __repr__(self):
        return f"<Provider(id={self.id}, npi={self.npi}, status={self.status})>"
