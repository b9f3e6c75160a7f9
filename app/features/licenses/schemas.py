"""
Pydantic schemas for licenses.
"""
from datetime import date, datetime
from pydantic import BaseModel, Field, ConfigDict

from app.features.licenses.models import LicenseStatus, VerificationStatus


class LicenseCreate(BaseModel):
    license_number: str = Field(..., min_length=1, max_length=100)
    license_type: str = Field(..., min_length=1, max_length=100)
    issuing_state: str = Field(..., pattern=r"^[A-Za-z]{2}$", description="Two-letter state code")
    issue_date: date
    expiration_date: date
    company_id: str | None = Field(None, description="Required when the provider belongs to several companies")


class LicenseResponse(BaseModel):
    id: str
    provider_id: str
    company_id: str | None = None
    license_number: str
    license_type: str
    issuing_state: str
    issue_date: date
    expiration_date: date
    status: LicenseStatus
    verification_status: VerificationStatus
    verified_at: datetime | None = None
    verified_by: str | None = None
    last_verified_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class VerifyLicenseResponse(BaseModel):
    license: LicenseResponse
    verified: bool
    message: str
