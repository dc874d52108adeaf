from datetime import timedelta

import pytest

from tokenable.tokens.errors import TokenGenerationError, TokenStoreError
from tokenable.tokens.models import OwnerRef
from tokenable.tokens.secret_generator import SecretGeneratorProtocol
from tokenable.tokens.sqlite_token_store import SQLiteTokenStore
from tokenable.tokens.token_manager import TokenManager


class SequenceSecretGenerator(SecretGeneratorProtocol):
    """Deterministic generator replaying a fixed list of secrets."""

    def __init__(self, secrets: list) -> None:
        self.secrets = list(secrets)
        self.calls = 0

    def generate(self) -> str:
        secret = self.secrets[min(self.calls, len(self.secrets) - 1)]
        self.calls += 1
        return secret


class FlakyStore(SQLiteTokenStore):
    """SQLite store whose reads or writes can be switched off."""

    def __init__(self, connection) -> None:
        super().__init__(connection=connection)
        self.fail_saves = False
        self.fail_reads = False

    async def save_token(self, record) -> None:
        if self.fail_saves:
            raise TokenStoreError(detail="database is locked")
        await super().save_token(record)

    async def update_last_used(self, token_id, last_used_at) -> bool:
        if self.fail_saves:
            raise TokenStoreError(detail="database is locked")
        return await super().update_last_used(token_id, last_used_at)

    async def get_token_by_hash(self, secret_hash):
        if self.fail_reads:
            raise TokenStoreError(detail="database is unreachable")
        return await super().get_token_by_hash(secret_hash)


@pytest.mark.asyncio
async def test_issue_then_find_valid(token_manager, token_store, owner, clock) -> None:
    issued = await token_manager.issue(owner, name="cli", ttl=timedelta(days=30))

    assert len(issued.secret) >= 40
    assert issued.record.name == "cli"
    assert issued.record.owner == owner
    assert issued.record.created_at == clock.now
    assert issued.record.expires_at == clock.now + timedelta(days=30)

    found = await token_manager.find_valid(issued.secret)
    assert found is not None
    assert found.id == issued.record.id
    assert await token_manager.find_valid(issued.secret + "x") is None

    # Only the hash is persisted
    stored = await token_store.get_token_by_id(issued.record.id)
    assert stored.secret_hash != issued.secret
    assert token_manager.verify(issued.secret, stored)


@pytest.mark.asyncio
async def test_unknown_and_expired_secrets_are_indistinguishable(token_manager, owner, clock) -> None:
    issued = await token_manager.issue(owner, name="short", ttl=60)
    clock.advance(seconds=61)

    expired_result = await token_manager.find_valid(issued.secret)
    unknown_result = await token_manager.find_valid("f" * 64)

    assert expired_result is None
    assert unknown_result is None


@pytest.mark.asyncio
async def test_zero_ttl_token_is_immediately_invalid(token_manager, owner) -> None:
    issued = await token_manager.issue(owner, name="already-expired", ttl=0)

    assert await token_manager.find_valid(issued.secret) is None


@pytest.mark.asyncio
async def test_token_without_expiry_never_expires(token_manager, owner, clock) -> None:
    issued = await token_manager.issue(owner, name="forever")
    clock.advance(days=365 * 50)

    assert issued.record.expires_at is None
    assert await token_manager.find_valid(issued.secret) is not None


@pytest.mark.asyncio
async def test_absolute_expiry_and_default_lifetime(token_store, owner, clock) -> None:
    manager = TokenManager(token_store, clock=clock, default_lifetime=timedelta(hours=1))

    defaulted = await manager.issue(owner, name="default")
    absolute = await manager.issue(owner, name="absolute", expires_at=clock.now + timedelta(days=2))

    assert defaulted.record.expires_at == clock.now + timedelta(hours=1)
    assert absolute.record.expires_at == clock.now + timedelta(days=2)


@pytest.mark.asyncio
async def test_issue_rejects_ttl_and_expires_at_together(token_manager, owner, clock) -> None:
    with pytest.raises(ValueError):
        await token_manager.issue(owner, ttl=60, expires_at=clock.now)


@pytest.mark.asyncio
async def test_empty_secret_is_not_looked_up(token_manager) -> None:
    assert await token_manager.find_valid("") is None


@pytest.mark.asyncio
async def test_revoke_one_of_two_tokens(token_manager, owner) -> None:
    first = await token_manager.issue(owner, name="laptop")
    second = await token_manager.issue(owner, name="ci")

    assert await token_manager.revoke(first.record) is True

    remaining = await token_manager.tokens_for(owner)
    assert [r.id for r in remaining] == [second.record.id]
    assert await token_manager.find_valid(first.secret) is None


@pytest.mark.asyncio
async def test_revoke_is_idempotent(token_manager, owner) -> None:
    issued = await token_manager.issue(owner, name="cli")

    assert await token_manager.revoke(issued.record) is True
    assert await token_manager.revoke(issued.record) is False


@pytest.mark.asyncio
async def test_revoke_all_removes_only_that_owner(token_manager, token_store, owner) -> None:
    other = OwnerRef(owner_type="user", owner_id="U2")
    for name in ("a", "b", "c"):
        await token_manager.issue(owner, name=name)
    kept = await token_manager.issue(other, name="other")

    assert await token_manager.revoke_all(owner) == 3
    assert await token_store.get_active_tokens_by_owner(owner) == []
    assert await token_manager.revoke_all(owner) == 0
    assert [r.id for r in await token_manager.tokens_for(other)] == [kept.record.id]


@pytest.mark.asyncio
async def test_purge_expired_removes_exactly_expired_records(token_manager, token_store, owner, clock) -> None:
    other = OwnerRef(owner_type="service", owner_id="S1")
    never = await token_manager.issue(owner, name="never")
    future = await token_manager.issue(owner, name="future", ttl=timedelta(days=1))
    for ttl in (0, 10, 20):
        await token_manager.issue(owner, name=f"expiring-{ttl}", ttl=ttl)
    await token_manager.issue(other, name="other-expiring", ttl=5)

    clock.advance(seconds=30)
    purged = await token_manager.purge_expired()

    assert purged == 4
    remaining = await token_store.get_tokens_by_owner(owner)
    assert {r.id for r in remaining} == {never.record.id, future.record.id}
    assert await token_store.get_tokens_by_owner(other) == []
    assert await token_manager.purge_expired() == 0


@pytest.mark.asyncio
async def test_hash_collision_is_retried(token_store, owner, clock) -> None:
    generator = SequenceSecretGenerator(["a" * 40, "a" * 40, "b" * 40])
    manager = TokenManager(token_store, secret_generator=generator, clock=clock, max_issue_attempts=3)

    first = await manager.issue(owner, name="first")
    second = await manager.issue(owner, name="second")

    assert first.secret == "a" * 40
    assert second.secret == "b" * 40
    assert generator.calls == 3


@pytest.mark.asyncio
async def test_persistent_collision_is_a_generation_error(token_store, owner, clock) -> None:
    generator = SequenceSecretGenerator(["c" * 40])
    manager = TokenManager(token_store, secret_generator=generator, clock=clock, max_issue_attempts=2)
    await manager.issue(owner, name="taken")

    with pytest.raises(TokenGenerationError):
        await manager.issue(owner, name="collides")

    assert len(await token_store.get_tokens_by_owner(owner)) == 1


@pytest.mark.asyncio
async def test_touch_records_last_use(token_manager, token_store, owner, clock) -> None:
    issued = await token_manager.issue(owner, name="cli")
    clock.advance(minutes=5)

    await token_manager.touch(issued.record)

    stored = await token_store.get_token_by_id(issued.record.id)
    assert stored.last_used_at == clock.now
    assert stored.created_at == issued.record.created_at


@pytest.mark.asyncio
async def test_touch_swallows_store_failures(db_connection, owner, clock) -> None:
    store = FlakyStore(db_connection)
    manager = TokenManager(store, clock=clock)
    issued = await manager.issue(owner, name="cli")

    store.fail_saves = True
    record = await manager.touch(issued.record)

    assert record.id == issued.record.id


@pytest.mark.asyncio
async def test_lookup_failures_propagate(db_connection, owner, clock) -> None:
    store = FlakyStore(db_connection)
    manager = TokenManager(store, clock=clock)
    issued = await manager.issue(owner, name="cli")

    store.fail_reads = True
    with pytest.raises(TokenStoreError):
        await manager.find_valid(issued.secret)


@pytest.mark.asyncio
async def test_touch_after_revoke_keeps_token_revoked(token_manager, token_store, owner) -> None:
    issued = await token_manager.issue(owner, name="cli")
    found = await token_manager.find_valid(issued.secret)

    await token_manager.revoke(found)
    await token_manager.touch(found)

    assert await token_manager.find_valid(issued.secret) is None
    assert await token_store.get_token_by_id(issued.record.id) is None


@pytest.mark.asyncio
async def test_touch_after_revoke_all_or_purge_keeps_tokens_gone(token_manager, token_store, owner, clock) -> None:
    revoked = await token_manager.issue(owner, name="revoked")
    expiring = await token_manager.issue(owner, name="expiring", ttl=60)
    revoked_found = await token_manager.find_valid(revoked.secret)
    expiring_found = await token_manager.find_valid(expiring.secret)

    await token_manager.revoke_all(owner)
    await token_manager.touch(revoked_found)

    await token_store.save_token(expiring.record)
    clock.advance(seconds=61)
    assert await token_manager.purge_expired() == 1
    await token_manager.touch(expiring_found)

    assert await token_store.get_tokens_by_owner(owner) == []


@pytest.mark.asyncio
@pytest.mark.parametrize("ttl", [10 ** 12, 10 ** 15, timedelta(days=999999999)])
async def test_out_of_range_ttl_is_a_value_error(token_manager, token_store, owner, ttl) -> None:
    with pytest.raises(ValueError):
        await token_manager.issue(owner, name="forever-ish", ttl=ttl)

    assert await token_store.get_tokens_by_owner(owner) == []


@pytest.mark.asyncio
async def test_unencodable_secret_is_unknown(token_manager) -> None:
    assert await token_manager.find_valid("\ud800") is None
