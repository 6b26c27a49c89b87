"""Single-use nonces bound to a login session."""

import uuid

from aadauth.oidc.session import SessionStore

NONCE_SESSION_KEY = "aadauth.nonce"


class NonceManager:
    """Issues and consumes the nonce embedded in the authorization request."""

    def __init__(self, session_key: str = NONCE_SESSION_KEY) -> None:
        self._session_key = session_key

    async def issue(self, session: SessionStore) -> str:
        """Store a fresh nonce in the session and return it.

        Replaces any nonce left over from an earlier, unfinished attempt.
        """
        nonce = str(uuid.uuid4())
        await session.set(self._session_key, nonce)
        return nonce

    async def consume(self, session: SessionStore) -> str | None:
        """Remove and return the session's nonce."""
        return await session.delete(self._session_key)
