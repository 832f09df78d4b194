"""Access-token handling.

Exports
-------
TokenManager / AsyncTokenManager
    Keep a valid access token, refreshing through the API key on demand.
TokenFileStore
    Persist the token in a file guarded by advisory locks.
decode_claims / token_expiry / is_expired
    Read the ``exp`` claim of a token without verifying its signature.
"""

from .jwt import decode_claims, is_expired, token_expiry
from .manager import AsyncTokenManager, TokenManager
from .store import TokenFileStore

__all__ = [
    "AsyncTokenManager",
    "TokenFileStore",
    "TokenManager",
    "decode_claims",
    "is_expired",
    "token_expiry",
]
