"""
License model with lifecycle and verification states.

`status` and `verification_status` are independent: the expiration sweep
owns `status`, admins own `verification_status`.
"""
from datetime import date, datetime
import enum

from sqlalchemy import String, Date, DateTime, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database.base import Base, TimestampMixin
from app.utils import generate_ulid


class LicenseStatus(str, enum.Enum):
    ACTIVE = "active"
    EXPIRED = "expired"
    SUSPENDED = "suspended"
    REVOKED = "revoked"


class VerificationStatus(str, enum.Enum):
    PENDING = "pending"
    VERIFIED = "verified"
    FAILED = "failed"


class License(Base, TimestampMixin):
    __tablename__ = "licenses"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    provider_id: Mapped[str] = mapped_column(String(26), ForeignKey("providers.id", ondelete="CASCADE"), nullable=False, index=True)
    company_id: Mapped[str | None] = mapped_column(String(26), ForeignKey("companies.id", ondelete="SET NULL"), nullable=True, index=True)

    license_number: Mapped[str] = mapped_column(String(100), nullable=False)
    license_type: Mapped[str] = mapped_column(String(100), nullable=False)
    issuing_state: Mapped[str] = mapped_column(String(2), nullable=False)
    issue_date: Mapped[date] = mapped_column(Date, nullable=False)
    expiration_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)

    status: Mapped[LicenseStatus] = mapped_column(
        SQLEnum(LicenseStatus),
        default=LicenseStatus.ACTIVE,
        nullable=False,
        index=True
    )
    verification_status: Mapped[VerificationStatus] = mapped_column(
        SQLEnum(VerificationStatus),
        default=VerificationStatus.PENDING,
        nullable=False
    )
    verified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    verified_by: Mapped[str | None] = mapped_column(String(26), ForeignKey("users.id"))
    last_verified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Needed by the sweep to address notifications
    provider: Mapped["Provider"] = relationship("Provider", lazy="selectin")  # type: ignore

    def __repr__(self) -> str:
        return f"<License(id={self.id}, number={self.license_number!r}, status={self.status}, verification={self.verification_status})>"
