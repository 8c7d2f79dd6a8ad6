"""Shared-secret API key check."""
import secrets

from fastapi import Request

from intentions.config import settings
from intentions.errors import Unauthorized


def _presented_key(request: Request) -> str:
    key = request.headers.get("X-API-Key")
    if key:
        return key
    auth = request.headers.get("Authorization", "")
    if auth.startswith("Bearer "):
        return auth[len("Bearer "):]
    return ""


def verify_api_key(presented: str) -> bool:
    expected = settings.api_secret_key
    if not expected:
        return True  # no secret configured: development mode
    return secrets.compare_digest(presented.encode(), expected.encode())


async def require_api_key(request: Request) -> None:
    """FastAPI dependency: raises Unauthorized unless the request carries the shared secret."""
    if not verify_api_key(_presented_key(request)):
        raise Unauthorized("Invalid API key")
