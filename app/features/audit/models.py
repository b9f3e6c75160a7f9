"""
Admin action log model.

Rows are only ever inserted; nothing in the application updates or deletes them.
"""
from datetime import datetime
from sqlalchemy import String, Text, DateTime, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database.base import Base
from app.utils import generate_ulid, utcnow


class AdminActionLog(Base):
    """
    One privileged state change: who did what to which record, for which company.
    """
    __tablename__ = "admin_action_logs"
    
    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    
    admin_id: Mapped[str] = mapped_column(String(26), ForeignKey("users.id"), nullable=False, index=True)
    action_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    target_id: Mapped[str] = mapped_column(String(26), nullable=False, index=True)
    company_id: Mapped[str | None] = mapped_column(
        String(26),
        ForeignKey("companies.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )
    
    def __repr__(self) -> str:
        return f"<AdminActionLog(id={self.id}, admin_id={self.admin_id}, action={self.action_type}, target={self.target_id})>"
