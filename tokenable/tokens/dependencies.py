# tokenable/tokens/dependencies.py
import logging
from typing import Optional, Annotated
from fastapi import Request as FastAPIRequest, Header, Depends

from .authenticator import BearerTokenAuthenticator
from .models import AuthenticatedPrincipal
from .owners import OwnerResolverRegistry, passthrough_owner_resolver
from .sqlite_token_store import get_sqlite_token_store
from .storage_interfaces import AbstractTokenStore
from .token_manager import TokenManager

logger = logging.getLogger(__name__)

# Host applications register their own owner types here, e.g.
# owner_resolver_registry.register("user", load_user_by_ref)
owner_resolver_registry = OwnerResolverRegistry(fallback=passthrough_owner_resolver)


async def get_token_store_dependency() -> AbstractTokenStore:
    """Dependency provider for the personal access token store."""
    return await get_sqlite_token_store()


def get_token_manager_dependency(
    token_store: Annotated[AbstractTokenStore, Depends(get_token_store_dependency)]
) -> TokenManager:
    """Dependency provider for the token manager bound to the configured store."""
    return TokenManager(token_store)


def get_owner_resolver_dependency() -> OwnerResolverRegistry:
    return owner_resolver_registry


def get_authenticator_dependency(
    token_manager: Annotated[TokenManager, Depends(get_token_manager_dependency)]
) -> BearerTokenAuthenticator:
    return BearerTokenAuthenticator(token_manager)


async def get_current_principal(
    request: FastAPIRequest,
    authenticator: Annotated[BearerTokenAuthenticator, Depends(get_authenticator_dependency)],
    owner_resolver: Annotated[OwnerResolverRegistry, Depends(get_owner_resolver_dependency)],
    authorization: Annotated[Optional[str], Header()] = None
) -> AuthenticatedPrincipal:
    """
    Authenticates the request from its Bearer token.

    On success the principal is also stored on `request.state.principal`
    for the rest of the request. Any failure raises InvalidTokenError (401).
    """
    principal = await authenticator.authenticate(authorization, owner_resolver.resolve)
    request.state.principal = principal
    return principal
