# tokenable/tokens/models.py
from datetime import datetime, timezone
from typing import Any, List, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class OwnerRef(BaseModel):
    """Polymorphic reference to the principal a token authenticates as."""
    model_config = ConfigDict(frozen=True)

    owner_type: str = Field(min_length=1, description="Type discriminator, e.g. 'user' or 'service_account'.")
    owner_id: str = Field(min_length=1, description="Identifier of the owner within its type.")

    @classmethod
    def from_tokenable(cls, tokenable: Any) -> "OwnerRef":
        """Build a reference from any object exposing tokenable_type and tokenable_id."""
        return cls(
            owner_type=str(tokenable.tokenable_type),
            owner_id=str(tokenable.tokenable_id)
        )

    def __str__(self) -> str:
        return f"{self.owner_type}:{self.owner_id}"


class TokenRecord(BaseModel):
    """Persisted personal access token. Holds the secret's hash, never the secret."""
    id: str = Field(default_factory=lambda: uuid4().hex)
    name: Optional[str] = None
    secret_hash: str = Field(min_length=64, max_length=64)
    owner_type: str
    owner_id: str
    created_at: datetime = Field(default_factory=utcnow)
    expires_at: Optional[datetime] = None
    last_used_at: Optional[datetime] = None

    @field_validator("created_at", "expires_at", "last_used_at")
    @classmethod
    def _normalize_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value) if value is not None else None

    @property
    def owner(self) -> OwnerRef:
        return OwnerRef(owner_type=self.owner_type, owner_id=self.owner_id)

    @property
    def hash_prefix(self) -> str:
        # Enough to correlate log lines without exposing the digest
        return self.secret_hash[:10]

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        return self.expires_at <= as_utc(now or utcnow())

    def is_valid(self, now: Optional[datetime] = None) -> bool:
        return not self.is_expired(now)


DEFAULT_ROLES = ("ROLE_USER",)

# Keeps now + ttl well inside the datetime range
MAX_TTL_SECONDS = 100 * 365 * 24 * 3600


class AuthenticatedPrincipal(BaseModel):
    """The owner resolved from a valid bearer token, attached to the request for its lifetime."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    owner_ref: OwnerRef
    owner: Any
    token: TokenRecord
    roles: List[str] = Field(default_factory=lambda: list(DEFAULT_ROLES))

    @property
    def identifier(self) -> str:
        return self.owner_ref.owner_id

    @classmethod
    def for_owner(cls, owner_ref: OwnerRef, owner: Any, token: TokenRecord) -> "AuthenticatedPrincipal":
        """Build a principal, merging the owner's own roles (if it has any) into the defaults."""
        owner_roles = owner.get("roles") if isinstance(owner, dict) else getattr(owner, "roles", None)
        roles = list(DEFAULT_ROLES)
        if isinstance(owner_roles, (list, tuple)):
            for role in owner_roles:
                if role not in roles:
                    roles.append(role)
        return cls(owner_ref=owner_ref, owner=owner, token=token, roles=roles)


# --- API request/response models ---

class IssueTokenRequest(BaseModel):
    """Request body for issuing a token. At most one of ttl_seconds and expires_at may be set."""
    name: Optional[str] = Field(default=None, max_length=255, description="Human-readable label, e.g. 'cli'.")
    ttl_seconds: Optional[int] = Field(
        default=None,
        ge=0,
        le=MAX_TTL_SECONDS,
        description="Lifetime in seconds from now, at most 100 years."
    )
    expires_at: Optional[datetime] = Field(default=None, description="Absolute expiry (UTC if naive).")

    @model_validator(mode="after")
    def _single_expiry_source(self) -> "IssueTokenRequest":
        if self.ttl_seconds is not None and self.expires_at is not None:
            raise ValueError("Provide either ttl_seconds or expires_at, not both.")
        return self


class TokenMetadata(BaseModel):
    """Public view of a token record. The hash is not exposed."""
    id: str
    name: Optional[str] = None
    owner_type: str
    owner_id: str
    created_at: datetime
    expires_at: Optional[datetime] = None
    last_used_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: TokenRecord) -> "TokenMetadata":
        return cls(**record.model_dump(exclude={"secret_hash"}))


class IssuedTokenResponse(BaseModel):
    plain_text_token: str = Field(description="The secret. Shown once; it cannot be retrieved again.")
    token: TokenMetadata
    message: str = "Token issued successfully. Store it now; it will not be shown again."


class RevokedTokensResponse(BaseModel):
    revoked: int


class PurgedTokensResponse(BaseModel):
    purged: int


class PrincipalResponse(BaseModel):
    owner_type: str
    owner_id: str
    roles: List[str]
    token: TokenMetadata
