"""Inbound API key check for /tracker endpoints.

Disabled when TRACKER_API_KEY is unset. Clients send the key either as
`X-API-Key` or as an `Authorization: Bearer <key>` header; the scheme is
matched case-insensitively and the key is compared in constant time.
"""

import secrets

from fastapi import Header, HTTPException

from app.config import settings


def _bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


async def verify_api_key(
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
    authorization: str | None = Header(default=None),
) -> str:
    expected = settings.tracker_api_key
    if expected is None:
        return ""

    presented = x_api_key if x_api_key is not None else _bearer_token(authorization)
    if presented is None or not secrets.compare_digest(
        presented.encode("utf-8"), expected.encode("utf-8")
    ):
        raise HTTPException(status_code=401, detail="Invalid or missing tracker API key")
    return presented
