"""
FastAPI dependencies for authentication and authorization.

Routes resolve the caller once through `get_current_actor` and hand the
resulting Actor to the workflow services explicitly.
"""
from typing import Annotated
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db
from app.core.errors import ForbiddenError, UnauthorizedError
from app.core.identity import Actor, require_admin
from app.features.users.models import User
from app.features.users.auth import verify_jwt_token, get_appwrite_user, role_from_appwrite_user
from app.utils import utcnow


security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)]
) -> User:
    """
    Get the current authenticated user from JWT token.
    
    This dependency:
    1. Extracts JWT from Authorization header
    2. Verifies JWT with Appwrite
    3. Looks up or creates user in local database
    4. Updates last_login_at timestamp

    New users take their role from their Appwrite labels.
    """
    if credentials is None:
        raise UnauthorizedError("Authentication required")

    payload = verify_jwt_token(credentials.credentials)
    appwrite_user_id = payload.get("userId")
    
    if not appwrite_user_id:
        raise UnauthorizedError("Invalid token payload")
    
    result = await db.execute(
        select(User).where(User.appwrite_id == appwrite_user_id)
    )
    user = result.scalar_one_or_none()
    
    if user is None:
        appwrite_user = await get_appwrite_user(appwrite_user_id)
        
        user = User(
            appwrite_id=appwrite_user_id,
            email=appwrite_user.get("email", ""),
            name=appwrite_user.get("name", "Unknown"),
            role=role_from_appwrite_user(appwrite_user),
            last_login_at=utcnow(),
        )
        db.add(user)
    else:
        user.last_login_at = utcnow()
    await db.commit()
    await db.refresh(user)
    
    if not user.is_active:
        raise ForbiddenError("User account is deactivated")
    
    return user


async def get_current_actor(
    user: Annotated[User, Depends(get_current_user)]
) -> Actor:
    """Identity context handed to workflow services."""
    return Actor(user_id=user.id, role=user.role)


async def get_current_admin_actor(
    actor: Annotated[Actor, Depends(get_current_actor)]
) -> Actor:
    """Require the admin role."""
    return require_admin(actor)


def get_authorization_header(request) -> str:
    """
    Extract authorization header for rate limiting.
    Used with slowapi Limiter.
    """
    auth = request.headers.get("Authorization", "")
    return auth or "anonymous"
