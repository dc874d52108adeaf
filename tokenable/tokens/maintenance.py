# tokenable/tokens/maintenance.py
import logging

from .sqlite_token_store import get_sqlite_token_store
from .token_manager import TokenManager

logger = logging.getLogger(__name__)


async def prune_expired_tokens() -> int:
    """Delete all expired tokens from the configured store. Meant for scheduled runs."""
    token_store = await get_sqlite_token_store()
    logger.info("Removing expired access tokens...")
    purged = await TokenManager(token_store).purge_expired()
    if purged:
        logger.info(f"Removed {purged} expired access token(s).")
    else:
        logger.info("No expired access tokens found.")
    return purged
