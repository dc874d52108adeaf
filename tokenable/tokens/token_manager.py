# tokenable/tokens/token_manager.py
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, List, NamedTuple, Optional, Union

from .errors import DuplicateTokenHashError, TokenGenerationError, TokenStoreError
from .hasher import TokenHasher
from .models import OwnerRef, TokenRecord, as_utc
from .secret_generator import DefaultSecretGenerator, SecretGeneratorProtocol
from .storage_interfaces import AbstractTokenStore
from ..settings import settings

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
TTL = Union[timedelta, int, float]


def system_clock() -> datetime:
    return datetime.now(timezone.utc)


class IssuedToken(NamedTuple):
    """Result of issuing a token. `secret` is only ever available here."""
    secret: str
    record: TokenRecord


def _default_lifetime_from_settings() -> Optional[timedelta]:
    hours = settings.token_default_lifetime_hours
    return timedelta(hours=hours) if hours is not None else None


class TokenManager:
    """
    Issues, validates and revokes personal access tokens.

    The manager keeps no state between calls besides its collaborators, so
    any number of instances (or processes) can share one store. Every
    operation performs at least one store round-trip.
    """

    def __init__(
        self,
        token_store: AbstractTokenStore,
        secret_generator: Optional[SecretGeneratorProtocol] = None,
        hasher: Optional[TokenHasher] = None,
        clock: Optional[Clock] = None,
        default_lifetime: Optional[timedelta] = None,
        max_issue_attempts: Optional[int] = None
    ):
        self.token_store = token_store
        self.secret_generator = secret_generator or DefaultSecretGenerator()
        self.hasher = hasher or TokenHasher()
        self.clock = clock or system_clock
        self.default_lifetime = default_lifetime if default_lifetime is not None else _default_lifetime_from_settings()
        self.max_issue_attempts = max_issue_attempts or settings.token_issue_max_attempts

    def _now(self) -> datetime:
        return as_utc(self.clock())

    def _resolve_expiry(
        self,
        now: datetime,
        ttl: Optional[TTL],
        expires_at: Optional[datetime]
    ) -> Optional[datetime]:
        if ttl is not None and expires_at is not None:
            raise ValueError("Pass either ttl or expires_at, not both.")
        if expires_at is not None:
            return as_utc(expires_at)
        if ttl is not None:
            try:
                if not isinstance(ttl, timedelta):
                    ttl = timedelta(seconds=ttl)
                if ttl < timedelta(0):
                    raise ValueError("ttl must not be negative.")
                return now + ttl
            except OverflowError as e:
                raise ValueError("ttl is too large to compute an expiry.") from e
        if self.default_lifetime is not None:
            return now + self.default_lifetime
        return None

    async def issue(
        self,
        owner: OwnerRef,
        name: Optional[str] = None,
        ttl: Optional[TTL] = None,
        expires_at: Optional[datetime] = None
    ) -> IssuedToken:
        """
        Create and persist a token for `owner`.

        Args:
            owner: The principal the token authenticates as.
            name: Optional label.
            ttl: Lifetime from now, as a timedelta or seconds.
            expires_at: Absolute expiry. Mutually exclusive with `ttl`.

        Returns:
            IssuedToken with the one-time plaintext secret and the stored record.

        Raises:
            ValueError: Both ttl and expires_at were given, or the expiry is out of range.
            TokenGenerationError: Randomness failed or every attempt collided.
            TokenStoreError: The store failed for another reason.
        """
        now = self._now()
        expiry = self._resolve_expiry(now, ttl, expires_at)

        for attempt in range(1, self.max_issue_attempts + 1):
            secret = self.secret_generator.generate()
            record = TokenRecord(
                name=name,
                secret_hash=self.hasher.hash(secret),
                owner_type=owner.owner_type,
                owner_id=owner.owner_id,
                created_at=now,
                expires_at=expiry
            )
            try:
                await self.token_store.save_token(record)
            except DuplicateTokenHashError:
                logger.warning(
                    f"Hash collision issuing token for '{owner}' "
                    f"(attempt {attempt}/{self.max_issue_attempts}); regenerating."
                )
                continue
            logger.info(
                f"Issued token '{record.id}' (name={record.name!r}) for owner '{owner}', "
                f"expires_at={record.expires_at.isoformat() if record.expires_at else 'never'}."
            )
            return IssuedToken(secret=secret, record=record)

        logger.error(f"Giving up issuing token for '{owner}' after {self.max_issue_attempts} collisions.")
        raise TokenGenerationError(detail="Could not generate a unique token secret.")

    async def find_valid(self, secret: str) -> Optional[TokenRecord]:
        """
        Return the record for `secret` if it exists and has not expired.

        Unknown and expired secrets both return None; callers cannot tell
        which case occurred.
        """
        if not secret:
            return None
        try:
            secret_hash = self.hasher.hash(secret)
        except UnicodeEncodeError:
            logger.debug("Presented secret is not encodable; treating it as unknown.")
            return None
        record = await self.token_store.get_token_by_hash(secret_hash)
        if record is None:
            return None
        if not record.is_valid(self._now()):
            logger.debug(f"Token '{record.id}' matched but has expired.")
            return None
        return record

    def verify(self, secret: str, record: TokenRecord) -> bool:
        """Check a secret against a stored record in constant time."""
        return self.hasher.verify(secret, record.secret_hash)

    async def touch(self, record: TokenRecord) -> TokenRecord:
        """
        Record that the token was just used.

        Best effort: a store failure is logged and swallowed so the caller's
        authentication still succeeds. Concurrent touches of one token are
        last-write-wins, and touching a token revoked in the meantime
        leaves it revoked.
        """
        record.last_used_at = self._now()
        try:
            await self.token_store.update_last_used(record.id, record.last_used_at)
        except TokenStoreError as e:
            logger.warning(f"Could not update last_used_at for token '{record.id}': {e.detail}")
        return record

    async def get_token(self, token_id: str) -> Optional[TokenRecord]:
        return await self.token_store.get_token_by_id(token_id)

    async def tokens_for(self, owner: OwnerRef) -> List[TokenRecord]:
        """Active (unexpired) tokens belonging to `owner`."""
        return await self.token_store.get_active_tokens_by_owner(owner, self._now())

    async def revoke(self, record: TokenRecord) -> bool:
        """Delete one token. Revoking a token that no longer exists is a no-op."""
        removed = await self.token_store.remove_token(record)
        if removed:
            logger.info(f"Revoked token '{record.id}' for owner '{record.owner}'.")
        else:
            logger.debug(f"Token '{record.id}' was already revoked.")
        return removed

    async def revoke_all(self, owner: OwnerRef) -> int:
        """Delete every token for `owner` and return the number removed."""
        count = await self.token_store.delete_tokens_by_owner(owner)
        logger.info(f"Revoked {count} token(s) for owner '{owner}'.")
        return count

    async def purge_expired(self) -> int:
        """Delete every token, for every owner, whose expiry has passed."""
        count = await self.token_store.delete_expired_tokens(self._now())
        logger.info(f"Purged {count} expired token(s).")
        return count
