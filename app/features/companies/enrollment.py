"""
Enrollment code generation and normalization.
"""
import secrets
import string

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import StorageError
from app.features.companies.models import Company
from app.utils import get_logger

log = get_logger(__name__)

ENROLLMENT_CODE_LENGTH = 8
# No 0/O or 1/I so codes survive being read aloud or retyped
ENROLLMENT_CODE_ALPHABET = "".join(
    c for c in string.ascii_uppercase + string.digits if c not in "0O1I"
)
MAX_GENERATION_ATTEMPTS = 10


def normalize_enrollment_code(code: str | None) -> str:
    """Trim and uppercase a user-entered code; None becomes an empty string."""
    return (code or "").strip().upper()


def random_enrollment_code() -> str:
    return "".join(
        secrets.choice(ENROLLMENT_CODE_ALPHABET) for _ in range(ENROLLMENT_CODE_LENGTH)
    )


async def generate_enrollment_code(db: AsyncSession) -> str:
    """
    Return a fresh code not used by any existing company.

    The unique constraint on companies.enrollment_code still guards against a
    concurrent insert picking the same code between this check and the commit.
    """
    for attempt in range(MAX_GENERATION_ATTEMPTS):
        code = random_enrollment_code()
        existing = await db.scalar(
            select(Company.id).where(Company.enrollment_code == code)
        )
        if existing is None:
            return code
        log.debug("Enrollment code collision on attempt %d", attempt + 1)
    raise StorageError("Could not generate a unique enrollment code. Please try again.")
