"""JWT helpers for the bearer tokens carried by every request.

Token issuance belongs to the identity service; ``create_access_token`` is
kept for scripts and tests that need a token signed with the local secret.
"""

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from clinic_api.core.config import settings


def create_access_token(
    subject: str,
    roles: list[str],
    expires_delta: timedelta | None = None,
    additional_claims: dict | None = None,
) -> str:
    """Create a signed access token.

    Args:
        subject: User id placed in the ``sub`` claim
        roles: Role names placed in the ``roles`` claim
        expires_delta: Optional custom expiration time
        additional_claims: Optional additional claims to include

    Returns:
        Encoded JWT token string
    """
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.access_token_expire_minutes)

    now = datetime.now(timezone.utc)
    to_encode = {
        "sub": subject,
        "roles": list(roles),
        "type": "access",
        "exp": now + expires_delta,
        "iat": now,
    }

    if additional_claims:
        to_encode.update(additional_claims)

    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str) -> dict | None:
    """Decode and validate an access token.

    Returns:
        Decoded payload, or None if the signature or expiry is invalid
    """
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None
