"""JWT token utilities.

Access tokens are issued by the external identity provider and signed
with the shared JWT_SECRET. This service only verifies them;
create_access_token exists for local development and tests.

Expected claims: sub (user UUID), email, optional name, type="access".
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import uuid4

from jose import JWTError, jwt

from qahub.config import JWT_ALGORITHM, JWT_SECRET

# JWT_SECRET is REQUIRED in all environments
if not JWT_SECRET:
    raise RuntimeError(
        "JWT_SECRET environment variable is required. "
        "Set it to the identity provider's signing secret"
    )

ACCESS_TOKEN_EXPIRE_MINUTES = 30

# Valid token types for API access
VALID_ACCESS_TOKEN_TYPES = ("access",)


def create_access_token(
    data: dict,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Create a JWT access token.

    Args:
        data: Payload data (should include 'sub' and 'email')
        expires_delta: Lifetime override, default ACCESS_TOKEN_EXPIRE_MINUTES

    Returns:
        Encoded JWT token string
    """
    to_encode = data.copy()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update(
        {
            "exp": expire,
            "iat": now,
            "type": "access",
            "jti": str(uuid4()),
        }
    )
    return jwt.encode(to_encode, JWT_SECRET, algorithm=JWT_ALGORITHM)


def verify_token(token: str) -> dict | None:
    """Verify and decode a JWT token.

    Returns:
        Decoded payload dict if valid, None if invalid/expired
    """
    try:
        return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except JWTError:
        return None
