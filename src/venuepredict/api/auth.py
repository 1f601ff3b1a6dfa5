"""Bearer-token checks for admin and cron endpoints."""

from __future__ import annotations

import hmac
from typing import TYPE_CHECKING

from venuepredict.errors import AuthError
from venuepredict.models import User
from venuepredict.storage.users import get_user_by_token

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection


def bearer_token(authorization: str | None) -> str:
    """Token from an `Authorization: Bearer <token>` header, or ""."""
    scheme, _, token = (authorization or "").strip().partition(" ")
    if scheme.lower() != "bearer":
        return ""
    return token.strip()


def authenticate_admin(conn: DuckDBPyConnection, authorization: str | None) -> User:
    token = bearer_token(authorization)
    if not token:
        raise AuthError("Missing bearer token.")
    user = get_user_by_token(conn, token)
    if user is None:
        raise AuthError("Invalid bearer token.")
    if not user.is_admin:
        raise AuthError("Admin access required.", status_code=403)
    return user


def check_cron_secret(secret: str | None, authorization: str | None, header_secret: str | None) -> None:
    """Accept the shared secret as a bearer token or an x-cron-secret header. No secret configured, no access."""
    if not secret:
        raise AuthError("Cron secret is not configured.")
    candidates = [bearer_token(authorization), (header_secret or "").strip()]
    if not any(c and hmac.compare_digest(c.encode(), secret.encode()) for c in candidates):
        raise AuthError("Invalid cron secret.")
