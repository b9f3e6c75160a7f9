"""
Pydantic schemas for audit log responses.
"""
from datetime import datetime
from pydantic import BaseModel, ConfigDict


class AdminActionLogResponse(BaseModel):
    id: str
    admin_id: str
    action_type: str
    target_id: str
    company_id: str | None = None
    notes: str | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
