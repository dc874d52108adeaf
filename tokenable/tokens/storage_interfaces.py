# tokenable/tokens/storage_interfaces.py
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from .models import OwnerRef, TokenRecord


class AbstractTokenStore(ABC):
    """
    Abstract base class defining the interface for personal access token storage.

    A store only persists what it is given. It never creates or disposes of
    records on its own initiative; the token manager owns that lifecycle.
    Implementations must enforce uniqueness of `secret_hash` and raise
    `DuplicateTokenHashError` when it is violated, and should report any
    other persistence failure as `TokenStoreError`.
    """

    @abstractmethod
    async def save_token(self, record: TokenRecord) -> None:
        """Insert the record, or update it if a record with the same id exists."""
        pass

    @abstractmethod
    async def remove_token(self, record: TokenRecord) -> bool:
        """Delete the record by id. Returns False if it was already gone."""
        pass

    @abstractmethod
    async def update_last_used(self, token_id: str, last_used_at: datetime) -> bool:
        """
        Set `last_used_at` on an existing record only.

        Must never recreate a record that has been deleted. Returns False if
        no record with `token_id` exists.
        """
        pass

    @abstractmethod
    async def get_token_by_hash(self, secret_hash: str) -> Optional[TokenRecord]:
        """Retrieve a record by the hash of its secret."""
        pass

    @abstractmethod
    async def get_token_by_id(self, token_id: str) -> Optional[TokenRecord]:
        """Retrieve a record by its id."""
        pass

    @abstractmethod
    async def get_tokens_by_owner(self, owner: OwnerRef) -> List[TokenRecord]:
        """Retrieve every record for an owner, expired or not."""
        pass

    @abstractmethod
    async def get_active_tokens_by_owner(self, owner: OwnerRef, now: Optional[datetime] = None) -> List[TokenRecord]:
        """Retrieve the owner's records that have not expired at `now`."""
        pass

    @abstractmethod
    async def delete_tokens_by_owner(self, owner: OwnerRef) -> int:
        """Delete every record for an owner and return how many were removed."""
        pass

    @abstractmethod
    async def delete_expired_tokens(self, now: Optional[datetime] = None) -> int:
        """Delete every record whose expiry is at or before `now` and return the count."""
        pass

    @abstractmethod
    async def initialize(self) -> None:
        """Initialize the storage system and prepare for operations."""
        pass

    @abstractmethod
    async def teardown(self) -> None:
        """Clean up resources and gracefully shutdown the storage system."""
        pass
