"""
Document model and review states.
"""
from datetime import datetime
import enum

from sqlalchemy import String, Integer, Text, ForeignKey, DateTime, Enum as SQLEnum, func
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database.base import Base, TimestampMixin
from app.utils import generate_ulid, utcnow


class DocumentStatus(str, enum.Enum):
    """
    Review state of a document.

    pending -> approved | rejected, and approved | rejected -> pending on revert.
    EXPIRED is part of the stored vocabulary but documents never move into it
    on their own; only licenses expire automatically.
    """
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    EXPIRED = "expired"


class Document(Base, TimestampMixin):
    __tablename__ = "documents"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    provider_id: Mapped[str] = mapped_column(String(26), ForeignKey("providers.id", ondelete="CASCADE"), nullable=False, index=True)
    company_id: Mapped[str | None] = mapped_column(String(26), ForeignKey("companies.id", ondelete="SET NULL"), nullable=True, index=True)

    document_type: Mapped[str] = mapped_column(String(100), nullable=False)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_path: Mapped[str] = mapped_column(String(500), nullable=False)
    file_size: Mapped[int] = mapped_column(Integer, nullable=False)
    mime_type: Mapped[str | None] = mapped_column(String(100))

    status: Mapped[DocumentStatus] = mapped_column(
        SQLEnum(DocumentStatus),
        default=DocumentStatus.PENDING,
        nullable=False,
        index=True
    )
    uploaded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    reviewed_by: Mapped[str | None] = mapped_column(String(26), ForeignKey("users.id"))
    notes: Mapped[str | None] = mapped_column(Text)

    def __repr__(self) -> str:
        return f"<Document(id={self.id}, type={self.document_type!r}, status={self.status})>"
