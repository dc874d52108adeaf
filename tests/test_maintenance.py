from datetime import datetime, timezone

import pytest

from tokenable.tokens import maintenance
from tokenable.tokens.token_manager import TokenManager


@pytest.mark.asyncio
async def test_prune_expired_tokens_uses_configured_store(monkeypatch, token_store, owner) -> None:
    past = TokenManager(token_store, clock=lambda: datetime(2020, 1, 1, tzinfo=timezone.utc))
    for name in ("old-1", "old-2", "old-3"):
        await past.issue(owner, name=name, ttl=60)
    kept = await past.issue(owner, name="kept")

    async def configured_store():
        return token_store

    monkeypatch.setattr(maintenance, "get_sqlite_token_store", configured_store)

    assert await maintenance.prune_expired_tokens() == 3
    assert [r.id for r in await token_store.get_tokens_by_owner(owner)] == [kept.record.id]
