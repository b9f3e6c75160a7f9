"""
Pydantic schemas for Provider API requests/responses.
"""
from datetime import datetime
from pydantic import BaseModel, Field, ConfigDict

from app.features.providers.models import ProviderStatus


class ProviderBase(BaseModel):
    """Base schema for provider."""
    npi: str = Field(..., pattern=r"^\d{10}$", description="10-digit National Provider Identifier")
    specialty: str = Field(..., min_length=1, max_length=100)
    phone: str | None = Field(None, max_length=20)
    address: str | None = Field(None, max_length=255)
    city: str | None = Field(None, max_length=100)
    state: str | None = Field(None, max_length=50)
    zip: str | None = Field(None, max_length=20)


class ProviderCreate(ProviderBase):
    """Schema for provider onboarding."""
    pass


class ProviderResponse(ProviderBase):
    """Schema for provider response."""
    id: str
    user_id: str
    status: ProviderStatus
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
