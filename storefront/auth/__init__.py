"""Authentication package (anonymous sessions only)."""
from .session import (
    SessionIdentityProvider,
    SessionResolution,
    is_recognized_token,
    issue_session_token,
)

__all__ = [
    "SessionIdentityProvider",
    "SessionResolution",
    "is_recognized_token",
    "issue_session_token",
]
