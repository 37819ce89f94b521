"""API key guard for tracker endpoints."""

from fastapi import HTTPException, Header

from tracker.config import settings


def _bearer_token(authorization: str | None) -> str | None:
    if authorization and authorization.startswith("Bearer "):
        return authorization[len("Bearer "):].strip()
    return None


async def verify_api_key(
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
    authorization: str | None = Header(default=None),
) -> str:
    """Accept the key from X-API-Key or Authorization: Bearer.

    With TRACKER_API_KEY unset every request passes.
    """
    expected = settings.tracker_api_key
    if expected is None:
        return ""

    key = x_api_key if x_api_key is not None else _bearer_token(authorization)
    if key != expected:
        raise HTTPException(status_code=401, detail="Invalid or missing API key")
    return key
