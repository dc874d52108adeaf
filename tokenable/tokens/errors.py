# tokenable/tokens/errors.py
from fastapi import HTTPException, status


class TokenAuthError(HTTPException):
    """Base exception class for personal access token errors.

    Inherits from FastAPI's HTTPException so errors raised in the core
    surface with a sensible status code when they reach the API layer.
    """

    def __init__(self, status_code: int, detail: str, headers: dict = None):
        super().__init__(status_code=status_code, detail=detail, headers=headers)


class InvalidTokenError(TokenAuthError):
    """Raised for every authentication failure.

    Missing header, wrong scheme, empty secret, unknown token and expired
    token all produce this same error so a client cannot tell them apart.
    """

    message_key = "auth.invalid_token"

    def __init__(self, detail: str = "Invalid or expired API token."):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"}
        )


class TokenGenerationError(TokenAuthError):
    """Raised when a token cannot be issued.

    Either the secure randomness source failed or every generated secret
    collided with an existing hash.
    """

    def __init__(self, detail: str = "Failed to generate a personal access token."):
        super().__init__(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)


class TokenStoreError(TokenAuthError):
    """Raised when the token store cannot be reached or a write fails."""

    def __init__(self, detail: str = "Token storage is unavailable."):
        super().__init__(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=detail)


class DuplicateTokenHashError(TokenStoreError):
    """Raised by a store when a record's secret_hash is already taken."""

    def __init__(self, detail: str = "A token with this hash already exists."):
        super().__init__(detail=detail)
