# tokenable/tokens/owners.py
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from .models import OwnerRef

logger = logging.getLogger(__name__)

OwnerResolver = Callable[[OwnerRef], Awaitable[Optional[Any]]]


async def passthrough_owner_resolver(owner_ref: OwnerRef) -> OwnerRef:
    """Resolve an owner to its own reference, for hosts without a user directory."""
    return owner_ref


class OwnerResolverRegistry:
    """
    Maps owner types to the callables that load live principals.

    Token records only carry an (owner_type, owner_id) pair; turning that
    back into a user or service account is the host application's job.
    """

    def __init__(self, fallback: Optional[OwnerResolver] = None):
        self._resolvers: Dict[str, OwnerResolver] = {}
        self.fallback = fallback

    def register(self, owner_type: str, resolver: OwnerResolver) -> None:
        if owner_type in self._resolvers:
            logger.warning(f"Replacing owner resolver for type '{owner_type}'.")
        self._resolvers[owner_type] = resolver

    def unregister(self, owner_type: str) -> None:
        self._resolvers.pop(owner_type, None)

    def registered_types(self) -> List[str]:
        return sorted(self._resolvers)

    async def resolve(self, owner_ref: OwnerRef) -> Optional[Any]:
        """Load the principal for `owner_ref`, or None if nothing can resolve it."""
        resolver = self._resolvers.get(owner_ref.owner_type, self.fallback)
        if resolver is None:
            logger.warning(f"No owner resolver registered for type '{owner_ref.owner_type}'.")
            return None
        return await resolver(owner_ref)

    __call__ = resolve
