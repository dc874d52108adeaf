# tokenable/tokens/__init__.py
"""
Personal access token module initialization.

Provides secret generation, hashing, the token manager, storage interfaces,
the bearer authenticator and the API endpoints built on them.
"""

# Core data models
from .models import (
    OwnerRef,
    TokenRecord,
    AuthenticatedPrincipal,
    IssueTokenRequest,
    IssuedTokenResponse,
    TokenMetadata
)

# Error taxonomy
from .errors import (
    TokenAuthError,
    InvalidTokenError,
    TokenGenerationError,
    TokenStoreError,
    DuplicateTokenHashError
)

# Secret generation and hashing
from .secret_generator import SecretGeneratorProtocol, DefaultSecretGenerator
from .hasher import TokenHasher

# Storage abstraction layer and its SQLite implementation
from .storage_interfaces import AbstractTokenStore
from .sqlite_token_store import SQLiteTokenStore, get_sqlite_token_store

# Token lifecycle and authentication
from .token_manager import TokenManager, IssuedToken
from .owners import OwnerResolver, OwnerResolverRegistry, passthrough_owner_resolver
from .authenticator import BearerTokenAuthenticator, extract_bearer_secret
from .maintenance import prune_expired_tokens

# FastAPI routers
from .endpoints import tokens_admin_router, tokens_auth_router

__all__ = [
    # Data models
    "OwnerRef",
    "TokenRecord",
    "AuthenticatedPrincipal",
    "IssueTokenRequest",
    "IssuedTokenResponse",
    "TokenMetadata",

    # Exception classes
    "TokenAuthError",
    "InvalidTokenError",
    "TokenGenerationError",
    "TokenStoreError",
    "DuplicateTokenHashError",

    # Secrets and hashing
    "SecretGeneratorProtocol",
    "DefaultSecretGenerator",
    "TokenHasher",

    # Storage
    "AbstractTokenStore",
    "SQLiteTokenStore",
    "get_sqlite_token_store",

    # Lifecycle and authentication
    "TokenManager",
    "IssuedToken",
    "OwnerResolver",
    "OwnerResolverRegistry",
    "passthrough_owner_resolver",
    "BearerTokenAuthenticator",
    "extract_bearer_secret",
    "prune_expired_tokens",

    # API endpoints
    "tokens_admin_router",
    "tokens_auth_router"
]
