# tokenable/tokens/hasher.py
import hashlib
import hmac


class TokenHasher:
    """SHA-256 hashing of token secrets with constant-time verification."""

    def hash(self, secret: str) -> str:
        """
        Create the SHA-256 hex digest of a secret.

        The digest is unsalted so a record can be found by hash equality;
        secrets carry enough entropy on their own. Raw secrets should never
        be stored; only their hashes are persisted.
        """
        return hashlib.sha256(secret.encode('utf-8')).hexdigest()

    def verify(self, secret: str, digest: str) -> bool:
        """Recompute the hash of `secret` and compare it to `digest` in constant time."""
        if not isinstance(digest, str) or not digest.isascii():
            return False
        return hmac.compare_digest(self.hash(secret), digest)
