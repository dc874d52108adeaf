# tokenable/tokens/secret_generator.py
import logging
import secrets
from abc import ABC, abstractmethod
from typing import Optional

from .errors import TokenGenerationError
from ..settings import settings

logger = logging.getLogger(__name__)

# 20 bytes = 160 bits of entropy
MIN_SECRET_BYTES = 20


class SecretGeneratorProtocol(ABC):
    """Protocol defining the interface for producing opaque token secrets."""

    @abstractmethod
    def generate(self) -> str:
        """Return a new random secret as text."""
        pass


class DefaultSecretGenerator(SecretGeneratorProtocol):
    """Hex-encoded secrets drawn from the operating system's CSPRNG."""

    def __init__(self, bytes_length: Optional[int] = None):
        length = settings.token_bytes_length if bytes_length is None else bytes_length
        if length < MIN_SECRET_BYTES:
            raise ValueError(
                f"Secrets need at least {MIN_SECRET_BYTES} random bytes, got {length}."
            )
        self.bytes_length = length

    def generate(self) -> str:
        """
        Generate a cryptographically secure secret.

        Returns:
            Hex string of 2 * bytes_length characters.

        Raises:
            TokenGenerationError: If the randomness source is unavailable.
        """
        try:
            return secrets.token_bytes(self.bytes_length).hex()
        except (OSError, NotImplementedError) as e:
            logger.critical(f"Secure randomness source unavailable: {e}", exc_info=True)
            raise TokenGenerationError(
                detail="Secure randomness source is unavailable."
            ) from e
