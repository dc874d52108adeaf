# tokenable/tokens/endpoints.py
import logging
from datetime import timedelta
from fastapi import APIRouter, Depends, HTTPException, Path, status
from typing import Annotated, List

from .models import (
    AuthenticatedPrincipal,
    IssueTokenRequest,
    IssuedTokenResponse,
    OwnerRef,
    PrincipalResponse,
    PurgedTokensResponse,
    RevokedTokensResponse,
    TokenMetadata
)
from .dependencies import get_current_principal, get_token_manager_dependency
from .token_manager import TokenManager
from ..dependencies import get_admin_api_key

logger = logging.getLogger(__name__)

# Admin router for token management - requires admin API key authentication
tokens_admin_router = APIRouter(
    prefix="/admin",
    tags=["Admin - Personal Access Tokens"],
    dependencies=[Depends(get_admin_api_key)]
)

# Routes authenticated by the presented bearer token itself
tokens_auth_router = APIRouter(
    prefix="/auth",
    tags=["Personal Access Token Authentication"]
)

OwnerTypePath = Annotated[str, Path(min_length=1, description="Owner type discriminator, e.g. 'user'.")]
OwnerIdPath = Annotated[str, Path(min_length=1, description="Owner identifier within its type.")]


@tokens_admin_router.post(
    "/owners/{owner_type}/{owner_id}/tokens",
    response_model=IssuedTokenResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Issue a personal access token for an owner"
)
async def issue_token_endpoint(
    owner_type: OwnerTypePath,
    owner_id: OwnerIdPath,
    request_data: IssueTokenRequest,
    token_manager: Annotated[TokenManager, Depends(get_token_manager_dependency)]
):
    """
    Issues a new token. The plaintext token is only returned in this response;
    it is never stored and cannot be retrieved later.
    """
    owner = OwnerRef(owner_type=owner_type, owner_id=owner_id)
    logger.info(f"API: Issuing token for owner '{owner}' (name={request_data.name!r}).")
    ttl = timedelta(seconds=request_data.ttl_seconds) if request_data.ttl_seconds is not None else None
    try:
        issued = await token_manager.issue(
            owner,
            name=request_data.name,
            ttl=ttl,
            expires_at=request_data.expires_at
        )
    except ValueError as e:
        logger.warning(f"API: Rejected token request for owner '{owner}': {e}")
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e
    return IssuedTokenResponse(
        plain_text_token=issued.secret,
        token=TokenMetadata.from_record(issued.record)
    )


@tokens_admin_router.get(
    "/owners/{owner_type}/{owner_id}/tokens",
    response_model=List[TokenMetadata]
)
async def list_tokens_endpoint(
    owner_type: OwnerTypePath,
    owner_id: OwnerIdPath,
    token_manager: Annotated[TokenManager, Depends(get_token_manager_dependency)]
):
    """List an owner's active (unexpired) tokens."""
    records = await token_manager.tokens_for(OwnerRef(owner_type=owner_type, owner_id=owner_id))
    return [TokenMetadata.from_record(r) for r in records]


@tokens_admin_router.delete(
    "/owners/{owner_type}/{owner_id}/tokens",
    response_model=RevokedTokensResponse
)
async def revoke_all_tokens_endpoint(
    owner_type: OwnerTypePath,
    owner_id: OwnerIdPath,
    token_manager: Annotated[TokenManager, Depends(get_token_manager_dependency)]
):
    """Revoke every token belonging to an owner."""
    revoked = await token_manager.revoke_all(OwnerRef(owner_type=owner_type, owner_id=owner_id))
    return RevokedTokensResponse(revoked=revoked)


@tokens_admin_router.delete(
    "/owners/{owner_type}/{owner_id}/tokens/{token_id}",
    status_code=status.HTTP_204_NO_CONTENT
)
async def revoke_token_endpoint(
    owner_type: OwnerTypePath,
    owner_id: OwnerIdPath,
    token_id: Annotated[str, Path(description="The id of the token to revoke.")],
    token_manager: Annotated[TokenManager, Depends(get_token_manager_dependency)]
):
    """Revoke a single token. Succeeds even when the token no longer exists."""
    owner = OwnerRef(owner_type=owner_type, owner_id=owner_id)
    record = await token_manager.get_token(token_id)
    if record is None:
        logger.info(f"API: Token '{token_id}' already absent; nothing to revoke.")
        return None
    if record.owner != owner:
        # Never reveal or touch another owner's token through this route
        logger.warning(f"API: Token '{token_id}' does not belong to owner '{owner}'; ignoring.")
        return None
    await token_manager.revoke(record)
    return None


@tokens_admin_router.post("/tokens/prune-expired", response_model=PurgedTokensResponse)
async def prune_expired_tokens_endpoint(
    token_manager: Annotated[TokenManager, Depends(get_token_manager_dependency)]
):
    """Delete expired tokens across all owners."""
    purged = await token_manager.purge_expired()
    return PurgedTokensResponse(purged=purged)


@tokens_auth_router.get("/me", response_model=PrincipalResponse)
async def current_principal_endpoint(
    principal: Annotated[AuthenticatedPrincipal, Depends(get_current_principal)]
):
    """Describe the principal the presented token authenticates as."""
    return PrincipalResponse(
        owner_type=principal.owner_ref.owner_type,
        owner_id=principal.owner_ref.owner_id,
        roles=principal.roles,
        token=TokenMetadata.from_record(principal.token)
    )


@tokens_auth_router.delete("/tokens/current", status_code=status.HTTP_204_NO_CONTENT)
async def revoke_current_token_endpoint(
    principal: Annotated[AuthenticatedPrincipal, Depends(get_current_principal)],
    token_manager: Annotated[TokenManager, Depends(get_token_manager_dependency)]
):
    """Revoke the token used to authenticate this request (log out)."""
    await token_manager.revoke(principal.token)
    return None
