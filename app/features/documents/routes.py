"""
Document upload and review routes.
"""
from typing import Annotated
from fastapi import APIRouter, Depends, UploadFile, File, Form, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db
from app.core.identity import Actor
from app.features.users.dependencies import get_current_actor, get_current_admin_actor
from app.features.documents.models import DocumentStatus
from app.features.documents.schemas import DocumentReject, DocumentResponse
from app.features.documents.storage import ContentStore, get_content_store
from app.features.documents import service
from app.features.providers.service import get_provider_for_user


router = APIRouter(tags=["documents"])


@router.post("", response_model=DocumentResponse, status_code=status.HTTP_201_CREATED)
async def upload_document(
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
    store: Annotated[ContentStore, Depends(get_content_store)],
    file: UploadFile = File(..., description="Credential document"),
    document_type: str = Form(..., max_length=100),
    company_id: str | None = Form(None)
):
    """
    Upload a credential document for review.

    With more than one approved company, `company_id` selects which one
    reviews it.
    """
    provider = await get_provider_for_user(db, actor.user_id)
    content = await file.read()
    return await service.upload_document(
        db,
        store,
        actor,
        provider,
        document_type=document_type,
        file_name=file.filename,
        content=content,
        mime_type=file.content_type,
        company_id=company_id or None,
    )


@router.get("/my", response_model=list[DocumentResponse])
async def get_my_documents(
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    provider = await get_provider_for_user(db, actor.user_id)
    return await service.list_provider_documents(db, provider.id)


@router.get("/companies/{company_id}", response_model=list[DocumentResponse])
async def get_company_documents(
    company_id: str,
    actor: Annotated[Actor, Depends(get_current_admin_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
    status_filter: DocumentStatus | None = None
):
    """Documents submitted to a company (company admin only)."""
    return await service.list_company_documents(db, actor, company_id, status_filter)


@router.post("/{document_id}/approve", response_model=DocumentResponse)
async def approve_document(
    document_id: str,
    actor: Annotated[Actor, Depends(get_current_admin_actor)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    return await service.approve_document(db, actor, document_id)


@router.post("/{document_id}/reject", response_model=DocumentResponse)
async def reject_document(
    document_id: str,
    actor: Annotated[Actor, Depends(get_current_admin_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
    body: DocumentReject | None = None
):
    """Reject a pending document; the notes are shown to the provider."""
    notes = body.notes if body else None
    return await service.reject_document(db, actor, document_id, notes)


@router.post("/{document_id}/revert", response_model=DocumentResponse)
async def revert_document(
    document_id: str,
    actor: Annotated[Actor, Depends(get_current_admin_actor)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Send a reviewed document back to pending."""
    return await service.revert_document(db, actor, document_id)
