"""Anonymous session identity.

Sessions are client-held: the server only issues opaque tokens and keys carts
by them. Nothing about a session is stored here.
"""
import re
import secrets
from dataclasses import dataclass
from typing import Optional

from storefront.logging import get_logger, sanitize_id_for_logging

logger = get_logger(__name__)

MAX_TOKEN_LENGTH = 128
TOKEN_BYTES = 24

_TOKEN_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


@dataclass(frozen=True)
class SessionResolution:
    """Resolved session id and whether the caller must persist a new token."""
    session_id: str
    issued: bool = False


def is_recognized_token(token: Optional[str]) -> bool:
    """A token is recognized when it is a non-empty URL-safe string of bounded length."""
    if not token or len(token) > MAX_TOKEN_LENGTH:
        return False
    return bool(_TOKEN_PATTERN.match(token))


def issue_session_token() -> str:
    """Mint a fresh 192-bit URL-safe token."""
    return secrets.token_urlsafe(TOKEN_BYTES)


class SessionIdentityProvider:
    """Resolves a client-supplied token to a session id, issuing one if needed."""

    def resolve_or_issue(self, token: Optional[str]) -> SessionResolution:
        """
        Return the token unchanged when recognized, otherwise a fresh one.

        Never fails: an absent or malformed token simply starts a new session.
        """
        if token is not None:
            token = token.strip()
        if is_recognized_token(token):
            return SessionResolution(session_id=token, issued=False)

        session_id = issue_session_token()
        logger.debug("Issued session %s", sanitize_id_for_logging(session_id))
        return SessionResolution(session_id=session_id, issued=True)
