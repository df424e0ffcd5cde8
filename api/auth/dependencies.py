"""FastAPI dependencies for authentication.

Provides:
- get_current_user: Verify the bearer token and resolve the local user
"""

from typing import Optional
from uuid import UUID

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import Session

from api.auth.jwt import VALID_ACCESS_TOKEN_TYPES, verify_token
from qahub.db.engine import get_session_dependency
from qahub.db.models import User
from qahub.exceptions import AuthenticationError
from qahub.logging import bind_context
from qahub.repository import UserRepository


# Security scheme for JWT Bearer tokens
security = HTTPBearer(auto_error=False)


class CurrentUser:
    """Container for the authenticated caller."""

    def __init__(self, user: User, claims: Optional[dict] = None):
        self.user = user
        self.claims = claims or {}

    @property
    def user_id(self) -> UUID:
        return self.user.id

    @property
    def email(self) -> str:
        return self.user.email


def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    session: Session = Depends(get_session_dependency),
) -> CurrentUser:
    """Extract and validate the current user from the JWT.

    This dependency:
    1. Extracts the JWT from the Authorization header
    2. Verifies signature, expiry and token type
    3. Mirrors the identity into the local users table
    4. Returns CurrentUser

    Raises:
        AuthenticationError: Missing, invalid or expired token, or the
            account is deactivated
        ConflictError: the token's email is mirrored for another subject
    """
    if not credentials:
        raise AuthenticationError("Missing authentication credentials")

    payload = verify_token(credentials.credentials)
    if not payload:
        raise AuthenticationError("Invalid or expired token")

    # Only access tokens are allowed for API routes
    if payload.get("type", "access") not in VALID_ACCESS_TOKEN_TYPES:
        raise AuthenticationError("Invalid token type for this endpoint")

    user_id_str = payload.get("sub")
    email = payload.get("email")
    if not user_id_str or not email:
        raise AuthenticationError("Invalid token payload")

    try:
        user_id = UUID(user_id_str)
    except ValueError:
        raise AuthenticationError("Invalid user ID in token")

    user = UserRepository(session).sync_identity(
        user_id, email, full_name=payload.get("name")
    )
    if not user.is_active:
        raise AuthenticationError("User account is deactivated")

    request.state.user = user
    bind_context(user_id=str(user.id))
    return CurrentUser(user=user, claims=payload)
