"""
Document upload and the document review state machine.

    pending --approve--> approved
    pending --reject---> rejected
    approved | rejected --revert--> pending

Only company admins move documents between states; providers create them
in pending and read their own.
"""
import os
import time

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import config
from app.core.database.engine import transaction
from app.core.errors import (
    ConflictError,
    ForbiddenError,
    InvalidFormatError,
    MissingFieldsError,
    NotFoundError,
    StorageError,
)
from app.core.events import events
from app.core.identity import Actor, require_admin
from app.features.audit import service as audit
from app.features.companies.service import get_owned_company
from app.features.documents.models import Document, DocumentStatus
from app.features.documents.storage import ContentStore
from app.features.providers.models import Provider
from app.features.providers.service import resolve_member_company
from app.utils import generate_ulid, get_logger, utcnow

log = get_logger(__name__)

REVERTIBLE_STATUSES = (DocumentStatus.APPROVED, DocumentStatus.REJECTED)


def build_file_path(user_id: str, file_name: str) -> str:
    """Storage path `<user_id>/<epoch millis>-<ulid>.<ext>`, independent of the user-supplied name."""
    ext = os.path.splitext(file_name)[1].lstrip(".").lower() or "bin"
    return f"{user_id}/{int(time.time() * 1000)}-{generate_ulid()}.{ext}"


async def upload_document(
    db: AsyncSession,
    store: ContentStore,
    actor: Actor,
    provider: Provider,
    document_type: str | None,
    file_name: str | None,
    content: bytes | None,
    mime_type: str | None = None,
    company_id: str | None = None,
) -> Document:
    """
    Store the file and create a pending document scoped to one approved company.

    If the database insert fails the stored blob is removed again.
    """
    if provider.user_id != actor.user_id:
        raise ForbiddenError("You can only upload documents to your own profile")
    if not content or not file_name or not document_type:
        raise MissingFieldsError("Please select a file and document type")
    if len(content) > config.MAX_DOCUMENT_SIZE:
        raise InvalidFormatError(
            f"File size must be less than {config.MAX_DOCUMENT_SIZE // (1024 * 1024)}MB"
        )

    target_company = await resolve_member_company(db, provider.id, company_id)
    file_path = build_file_path(actor.user_id, file_name)

    try:
        await store.save(file_path, content)
    except (OSError, ValueError) as exc:
        log.exception("Failed to store document for provider %s", provider.id)
        raise StorageError("Failed to store the uploaded file. Please try again.") from exc

    document = Document(
        provider_id=provider.id,
        company_id=target_company,
        document_type=document_type,
        file_name=file_name,
        file_path=file_path,
        file_size=len(content),
        mime_type=mime_type,
        status=DocumentStatus.PENDING,
        uploaded_at=utcnow(),
    )
    try:
        async with transaction(db):
            db.add(document)
    except StorageError:
        await store.delete(file_path)
        raise

    log.info("Document %s uploaded by provider %s for company %s", document.id, provider.id, target_company)
    events.emit("document.uploaded", document.id, target_company)
    return document


async def _load_reviewable(db: AsyncSession, actor: Actor, document_id: str) -> Document:
    require_admin(actor)
    document = await db.get(Document, document_id)
    if document is None:
        raise NotFoundError("Document")
    if document.company_id is None:
        raise ForbiddenError("This document is not assigned to a company")
    await get_owned_company(db, actor, document.company_id)
    return document


async def _transition(
    db: AsyncSession,
    actor: Actor,
    document: Document,
    allowed_from: tuple[DocumentStatus, ...],
    action_type: str,
    event_name: str,
    notes_for_log: str,
    **values,
) -> Document:
    """Conditional update from the status read; audit entry in the same transaction."""
    current = document.status
    if current not in allowed_from:
        raise ConflictError(f"Document is {current.value} and cannot be changed this way")

    async with transaction(db):
        result = await db.execute(
            update(Document)
            .where(Document.id == document.id, Document.status == current)
            .values(**values)
        )
        if result.rowcount != 1:
            raise ConflictError("This document was changed by someone else. Please refresh and try again.")
        audit.record_admin_action(
            db,
            admin_id=actor.user_id,
            action_type=action_type,
            target_id=document.id,
            company_id=document.company_id,
            notes=notes_for_log,
        )

    await db.refresh(document)
    log.info("Document %s: %s -> %s by %s", document.id, current.value, document.status.value, actor.user_id)
    events.emit(event_name, document.id, document.company_id)
    return document


async def approve_document(db: AsyncSession, actor: Actor, document_id: str) -> Document:
    document = await _load_reviewable(db, actor, document_id)
    return await _transition(
        db, actor, document,
        allowed_from=(DocumentStatus.PENDING,),
        action_type=audit.APPROVE_DOCUMENT,
        event_name="document.approved",
        notes_for_log="Approved document",
        status=DocumentStatus.APPROVED,
        reviewed_at=utcnow(),
        reviewed_by=actor.user_id,
    )


async def reject_document(
    db: AsyncSession,
    actor: Actor,
    document_id: str,
    notes: str | None = None,
) -> Document:
    document = await _load_reviewable(db, actor, document_id)
    return await _transition(
        db, actor, document,
        allowed_from=(DocumentStatus.PENDING,),
        action_type=audit.REJECT_DOCUMENT,
        event_name="document.rejected",
        notes_for_log=notes or "Rejected document",
        status=DocumentStatus.REJECTED,
        reviewed_at=utcnow(),
        reviewed_by=actor.user_id,
        notes=notes or None,
    )


async def revert_document(db: AsyncSession, actor: Actor, document_id: str) -> Document:
    """Back to pending; reviewer stamp and review notes are cleared."""
    document = await _load_reviewable(db, actor, document_id)
    return await _transition(
        db, actor, document,
        allowed_from=REVERTIBLE_STATUSES,
        action_type=audit.REVERT_DOCUMENT,
        event_name="document.reverted",
        notes_for_log="Reverted document to pending",
        status=DocumentStatus.PENDING,
        reviewed_at=None,
        reviewed_by=None,
        notes=None,
    )


async def list_company_documents(
    db: AsyncSession,
    actor: Actor,
    company_id: str,
    status: DocumentStatus | None = None,
) -> list[Document]:
    require_admin(actor)
    await get_owned_company(db, actor, company_id)
    query = select(Document).where(Document.company_id == company_id)
    if status:
        query = query.where(Document.status == status)
    result = await db.execute(query.order_by(Document.uploaded_at.desc()))
    return list(result.scalars().all())


async def list_provider_documents(db: AsyncSession, provider_id: str) -> list[Document]:
    result = await db.execute(
        select(Document)
        .where(Document.provider_id == provider_id)
        .order_by(Document.uploaded_at.desc())
    )
    return list(result.scalars().all())
