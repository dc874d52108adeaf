# tokenable/dependencies.py
import logging
import secrets
from fastapi import HTTPException, status, Header
from typing import Optional, Annotated

from .settings import settings

logger = logging.getLogger(__name__)

ADMIN_KEY_HEADER = "X-Admin-API-Key"


def _admin_key_matches(presented: str, configured: str) -> bool:
    return secrets.compare_digest(presented.encode("utf-8"), configured.encode("utf-8"))


async def get_admin_api_key(
    x_admin_api_key: Annotated[
        Optional[str],
        Header(description="Shared secret guarding the token administration routes.")
    ] = None
) -> str:
    """
    Gate for the `/admin` token routes.

    503 when the server has no ADMIN_API_KEY, 401 when the header is absent
    and 403 when it does not match.
    """
    configured = settings.admin_api_key
    if not configured:
        logger.critical("ADMIN_API_KEY is unset; token administration routes are disabled.")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Token administration is not configured on this server.",
        )

    if not x_admin_api_key:
        logger.warning(f"Admin API: request without {ADMIN_KEY_HEADER} header rejected.")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Not authenticated: {ADMIN_KEY_HEADER} header missing.",
        )

    if not _admin_key_matches(x_admin_api_key, configured):
        logger.warning(f"Admin API: wrong {ADMIN_KEY_HEADER} presented.")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden: invalid admin API key.",
        )

    return x_admin_api_key
