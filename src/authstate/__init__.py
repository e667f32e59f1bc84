"""
Session state for the auth client.

The controller owns a single session (logged out, resolving, or logged in)
and keeps it in step with a durable token slot that survives restarts.
"""

from .controller import AuthController, AuthResolutionError
from .models import Err, Ok, Result, Route, Session, SessionStatus
from .token_store import FileTokenStore, MemoryTokenStore, TokenStoreError

__all__ = [
    "AuthController",
    "AuthResolutionError",
    "Err",
    "FileTokenStore",
    "MemoryTokenStore",
    "Ok",
    "Result",
    "Route",
    "Session",
    "SessionStatus",
    "TokenStoreError",
]
