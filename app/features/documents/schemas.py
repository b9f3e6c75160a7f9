"""
Pydantic schemas for document review.
"""
from datetime import datetime
from pydantic import BaseModel, Field, ConfigDict

from app.features.documents.models import DocumentStatus


class DocumentReject(BaseModel):
    notes: str | None = Field(None, max_length=2000, description="Reason shown to the provider")


class DocumentResponse(BaseModel):
    id: str
    provider_id: str
    company_id: str | None = None
    document_type: str
    file_name: str
    file_path: str
    file_size: int
    mime_type: str | None = None
    status: DocumentStatus
    uploaded_at: datetime
    reviewed_at: datetime | None = None
    reviewed_by: str | None = None
    notes: str | None = None

    model_config = ConfigDict(from_attributes=True)
