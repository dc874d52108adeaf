# tokenable/tokens/authenticator.py
import logging
import re
from typing import Optional

from .errors import InvalidTokenError
from .models import AuthenticatedPrincipal
from .owners import OwnerResolver
from .token_manager import TokenManager

logger = logging.getLogger(__name__)

_BEARER_PATTERN = re.compile(r"^Bearer\s+(\S+)\s*$", re.IGNORECASE)


def extract_bearer_secret(authorization: Optional[str]) -> Optional[str]:
    """Return the secret from an `Authorization: Bearer <secret>` value, or None if it is not one."""
    if not authorization:
        return None
    match = _BEARER_PATTERN.match(authorization.strip())
    if not match:
        return None
    return match.group(1)


class BearerTokenAuthenticator:
    """
    Turns a raw Authorization header value into an authenticated principal.

    Every failure raises the same InvalidTokenError, whatever the cause,
    so clients learn nothing about why a token was rejected.
    """

    def __init__(self, token_manager: TokenManager):
        self.token_manager = token_manager

    async def authenticate(
        self,
        authorization: Optional[str],
        resolve_owner: OwnerResolver
    ) -> AuthenticatedPrincipal:
        """
        Authenticate one request.

        Args:
            authorization: The raw Authorization header value, if any.
            resolve_owner: Callback loading the live principal for an owner reference.

        Raises:
            InvalidTokenError: For any authentication failure.
            TokenStoreError: If the token lookup itself could not be performed.
        """
        secret = extract_bearer_secret(authorization)
        if not secret:
            logger.warning("Token Auth: missing or malformed bearer credentials.")
            raise InvalidTokenError()

        record = await self.token_manager.find_valid(secret)
        if record is None:
            logger.warning("Token Auth: unknown or expired token presented.")
            raise InvalidTokenError()

        owner = await resolve_owner(record.owner)
        if owner is None:
            logger.warning(f"Token Auth: token '{record.id}' belongs to unknown owner '{record.owner}'.")
            raise InvalidTokenError()

        record = await self.token_manager.touch(record)
        logger.info(f"Token Auth: authenticated owner '{record.owner}' with token '{record.id}'.")
        return AuthenticatedPrincipal.for_owner(record.owner, owner, record)
