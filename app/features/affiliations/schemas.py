"""
Pydantic schemas for affiliation requests and responses.
"""
from datetime import datetime
from pydantic import BaseModel, ConfigDict

from app.features.affiliations.models import LinkStatus
from app.features.companies.schemas import CompanyPublic


class LinkResponse(BaseModel):
    """Schema for affiliation link responses."""
    id: str
    provider_id: str
    company_id: str
    status: LinkStatus
    request_note: str | None = None
    requested_at: datetime
    approved_at: datetime | None = None
    approved_by: str | None = None
    rejected_at: datetime | None = None
    rejected_by: str | None = None

    model_config = ConfigDict(from_attributes=True)


class JoinRequestResponse(LinkResponse):
    """A newly created join request, with the company it targets."""
    company: CompanyPublic


class RemoveProviderResponse(BaseModel):
    success: bool = True
    link_id: str
