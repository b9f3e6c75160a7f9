"""
Provider-company affiliation links.

Users request access with a company's enrollment code; the company's admin
approves or rejects the request. One row exists per (provider, company) pair.
"""
from datetime import datetime
import enum

from sqlalchemy import String, ForeignKey, DateTime, UniqueConstraint, Enum as SQLEnum, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database.base import Base, TimestampMixin
from app.utils import generate_ulid, utcnow


class LinkStatus(str, enum.Enum):
    """Status of a provider's affiliation with a company."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ProviderCompanyLink(Base, TimestampMixin):
    """
    One provider's request for, and membership in, one company.

    The (provider_id, company_id) unique constraint is what makes two racing
    join requests for the same pair resolve to a single row.
    """
    __tablename__ = "provider_company_links"
    __table_args__ = (
        UniqueConstraint("provider_id", "company_id", name="uq_provider_company_link"),
    )
    
    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    
    provider_id: Mapped[str] = mapped_column(String(26), ForeignKey("providers.id", ondelete="CASCADE"), nullable=False, index=True)
    company_id: Mapped[str] = mapped_column(String(26), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    
    status: Mapped[LinkStatus] = mapped_column(
        SQLEnum(LinkStatus),
        default=LinkStatus.PENDING,
        nullable=False,
        index=True
    )
    request_note: Mapped[str | None] = mapped_column(String(500), nullable=True)
    requested_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )
    
    # Admin response
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    approved_by: Mapped[str | None] = mapped_column(String(26), ForeignKey("users.id"), nullable=True)
    rejected_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rejected_by: Mapped[str | None] = mapped_column(String(26), ForeignKey("users.id"), nullable=True)
    
    provider = relationship("Provider", lazy="selectin")
    company = relationship("Company", lazy="selectin")
    
    def __repr__(self) -> str:
        return f"<ProviderCompanyLink(id={self.id}, provider_id={self.provider_id}, company_id={self.company_id}, status={self.status})>"
