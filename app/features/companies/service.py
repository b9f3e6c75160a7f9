"""
Company workflows: creation, ownership checks and enrollment-code lookup.
"""
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import transaction
from app.core.errors import ForbiddenError, MissingFieldsError, NotFoundError, StorageError
from app.core.identity import Actor, require_admin
from app.features.companies.enrollment import generate_enrollment_code
from app.features.companies.models import Company
from app.utils import get_logger

log = get_logger(__name__)

MAX_CREATE_ATTEMPTS = 3


class _CodeTaken(Exception):
    pass


async def create_company(db: AsyncSession, actor: Actor, name: str | None) -> Company:
    """Create a company owned by the acting admin, with a new enrollment code."""
    require_admin(actor)
    name = (name or "").strip()
    if not name:
        raise MissingFieldsError("Company name is required")

    for _ in range(MAX_CREATE_ATTEMPTS):
        code = await generate_enrollment_code(db)
        company = Company(name=name, enrollment_code=code, admin_id=actor.user_id)
        try:
            async with transaction(db):
                db.add(company)
                try:
                    await db.flush()
                except IntegrityError as exc:
                    # Lost a race for the same code; retry with a new one
                    raise _CodeTaken() from exc
        except _CodeTaken:
            log.warning("Enrollment code %s taken concurrently, retrying", code)
            continue
        log.info("Company %s created by admin %s", company.id, actor.user_id)
        return company
    raise StorageError("Could not create the company. Please try again.")


async def get_company(db: AsyncSession, company_id: str) -> Company:
    company = await db.get(Company, company_id)
    if company is None:
        raise NotFoundError("Company")
    return company


async def get_owned_company(db: AsyncSession, actor: Actor, company_id: str) -> Company:
    """
    Load a company and require that the actor is its admin.

    Authorization always goes through the stored admin_id, never through a
    company id asserted by the client.
    """
    company = await get_company(db, company_id)
    if company.admin_id != actor.user_id:
        raise ForbiddenError("You are not the admin of this company")
    return company


async def lookup_company_by_code(db: AsyncSession, normalized_code: str) -> Company | None:
    """
    Service-level lookup by enrollment code.

    Runs without any per-actor visibility filter: the code itself is the
    credential that entitles a provider to discover the company.
    """
    return await db.scalar(
        select(Company).where(Company.enrollment_code == normalized_code)
    )


async def list_admin_companies(db: AsyncSession, actor: Actor) -> list[Company]:
    require_admin(actor)
    result = await db.execute(
        select(Company)
        .where(Company.admin_id == actor.user_id)
        .order_by(Company.created_at)
    )
    return list(result.scalars().all())


async def admin_company_ids(db: AsyncSession, admin_id: str) -> list[str]:
    result = await db.execute(select(Company.id).where(Company.admin_id == admin_id))
    return list(result.scalars().all())
