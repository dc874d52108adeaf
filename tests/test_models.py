from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from tokenable.tokens.hasher import TokenHasher
from tokenable.tokens.models import (
    AuthenticatedPrincipal,
    IssueTokenRequest,
    OwnerRef,
    TokenMetadata,
    TokenRecord,
)

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def make_record(**overrides) -> TokenRecord:
    fields = {
        "name": "cli",
        "secret_hash": TokenHasher().hash("secret"),
        "owner_type": "user",
        "owner_id": "U1",
        "created_at": NOW,
    }
    fields.update(overrides)
    return TokenRecord(**fields)


def test_record_without_expiry_is_always_valid() -> None:
    record = make_record(expires_at=None)

    assert record.is_valid(NOW)
    assert record.is_valid(NOW + timedelta(days=365 * 100))


def test_record_expiry_is_compared_against_now() -> None:
    assert not make_record(expires_at=NOW - timedelta(seconds=1)).is_valid(NOW)
    assert make_record(expires_at=NOW + timedelta(days=1)).is_valid(NOW)
    # Expiring exactly now counts as expired
    assert make_record(expires_at=NOW).is_expired(NOW)


def test_naive_datetimes_are_treated_as_utc() -> None:
    record = make_record(expires_at=datetime(2026, 1, 2, 0, 0))

    assert record.expires_at.tzinfo == timezone.utc
    assert record.is_valid(NOW)


def test_owner_ref_from_tokenable() -> None:
    class User:
        tokenable_type = "user"
        tokenable_id = 42

    owner = OwnerRef.from_tokenable(User())

    assert owner == OwnerRef(owner_type="user", owner_id="42")
    assert str(owner) == "user:42"


def test_owner_ref_rejects_empty_parts() -> None:
    with pytest.raises(ValidationError):
        OwnerRef(owner_type="", owner_id="1")


def test_metadata_never_exposes_hash() -> None:
    metadata = TokenMetadata.from_record(make_record())

    assert "secret_hash" not in metadata.model_dump()
    assert metadata.name == "cli"


def test_principal_merges_owner_roles_with_defaults() -> None:
    record = make_record()
    owner = {"id": "U1", "roles": ["ROLE_ADMIN", "ROLE_USER"]}

    principal = AuthenticatedPrincipal.for_owner(record.owner, owner, record)

    assert principal.roles == ["ROLE_USER", "ROLE_ADMIN"]
    assert principal.identifier == "U1"


def test_principal_without_owner_roles_gets_default_role() -> None:
    record = make_record()

    principal = AuthenticatedPrincipal.for_owner(record.owner, object(), record)

    assert principal.roles == ["ROLE_USER"]


def test_issue_request_rejects_two_expiry_sources() -> None:
    with pytest.raises(ValidationError):
        IssueTokenRequest(name="cli", ttl_seconds=60, expires_at=NOW)

    with pytest.raises(ValidationError):
        IssueTokenRequest(name="cli", ttl_seconds=-1)
