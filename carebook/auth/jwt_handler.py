"""Bearer tokens carrying the identity context.

Tokens are minted by the platform's identity service; this module only needs
to read them. ``issue_token`` exists for local tooling and tests.
"""

from datetime import datetime, timedelta, timezone

import jwt

from carebook.core import config

REQUIRED_CLAIMS = ["sub", "exp"]


def issue_token(email: str, expires_minutes: int | None = None) -> str:
    issued_at = datetime.now(timezone.utc)
    lifetime = timedelta(minutes=expires_minutes or config.JWT_EXPIRES_MINUTES)
    claims = {"sub": email.strip().lower(), "iat": issued_at, "exp": issued_at + lifetime}
    return jwt.encode(claims, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def read_subject(token: str) -> str:
    """Return the normalized email in ``sub``; raise ``jwt.InvalidTokenError`` otherwise."""
    claims = jwt.decode(
        token,
        config.JWT_SECRET_KEY,
        algorithms=[config.JWT_ALGORITHM],
        options={"require": REQUIRED_CLAIMS},
    )
    subject = claims.get("sub")
    if not isinstance(subject, str) or not subject.strip():
        raise jwt.InvalidTokenError("Token subject is empty")
    return subject.strip().lower()
