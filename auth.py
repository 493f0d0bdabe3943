"""
auth.py
Login gate: two static secrets (owner / partner), verified with bcrypt.

The secrets come from config and are hashed once when the gate is built, so the
plain values are not kept around in the running app.
"""

from __future__ import annotations

import logging

import bcrypt

from config import settings
from models import SCOPE_OWNER, SCOPE_PARTNER, Session

logger = logging.getLogger(__name__)

LOGIN_ERROR = "Senha incorreta. Tente novamente."


def _to_bcrypt_secret(password: str) -> bytes:
    """
    bcrypt only uses the first 72 BYTES of the password.
    We truncate to 72 bytes to avoid ValueError and to make behavior explicit.
    """
    pw = password.encode("utf-8")
    if len(pw) > 72:
        pw = pw[:72]
    return pw


def hash_password(password: str, rounds: int = 12) -> str:
    secret = _to_bcrypt_secret(password)
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(secret, salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    secret = _to_bcrypt_secret(password)
    return bcrypt.checkpw(secret, password_hash.encode("utf-8"))


class AuthGate:
    def __init__(self, owner_password: str, partner_password: str, rounds: int = 12):
        self._hashes = (
            (SCOPE_OWNER, hash_password(owner_password, rounds)),
            (SCOPE_PARTNER, hash_password(partner_password, rounds)),
        )

    @classmethod
    def from_settings(cls) -> "AuthGate":
        return cls(
            settings.auth.owner_password,
            settings.auth.partner_password,
            settings.auth.bcrypt_rounds,
        )

    def login(self, password: str) -> Session | None:
        """Return a new session for an accepted secret, None otherwise."""
        if not password:
            return None
        for scope, password_hash in self._hashes:
            if verify_password(password, password_hash):
                logger.info("Login accepted (%s)", scope)
                return Session(scope=scope)
        logger.warning("Login rejected")
        return None
