"""
Pydantic schemas for company requests and responses.
"""
from datetime import datetime
from pydantic import BaseModel, Field, ConfigDict


class CompanyCreate(BaseModel):
    """Schema for creating a company (admin only)."""
    name: str = Field(..., min_length=1, max_length=255)


class CompanyResponse(BaseModel):
    id: str
    name: str
    enrollment_code: str
    admin_id: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CompanyPublic(BaseModel):
    """Company fields visible to a provider after a successful join request."""
    id: str
    name: str
    enrollment_code: str

    model_config = ConfigDict(from_attributes=True)


class JoinRequestCreate(BaseModel):
    """
    Join a company by enrollment code.

    Code presence and length are checked by the workflow so the caller gets
    MISSING_FIELDS / INVALID_FORMAT rather than a generic validation error.
    """
    enrollment_code: str | None = None
    request_note: str | None = Field(None, max_length=500, description="Optional message to the company admin")
