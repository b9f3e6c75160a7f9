"""
Company model.

A company is owned by exactly one admin. Providers find it only through its
enrollment code, which is generated once at creation and never reused.
"""
from sqlalchemy import String, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database.base import Base, TimestampMixin
from app.utils import generate_ulid


class Company(Base, TimestampMixin):
    __tablename__ = "companies"
    
    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    
    # Always stored uppercase; lookups normalize the same way
    enrollment_code: Mapped[str] = mapped_column(String(8), unique=True, nullable=False, index=True)
    
    admin_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )
    
    def __repr__(self) -> str:
        return f"<Company(id={self.id}, name={self.name!r}, code={self.enrollment_code})>"
