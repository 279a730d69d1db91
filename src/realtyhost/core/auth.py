from __future__ import annotations

import hashlib
import secrets
from dataclasses import dataclass


@dataclass(frozen=True)
class AuthContext:
    """A verified caller identity."""

    uid: str


@dataclass
class AuthResult:
    allowed: bool
    reason: str
    context: AuthContext | None = None


class TokenVerifier:
    """Checks bearer tokens against a fixed set of API tokens.

    Identity issuance lives outside this service; a matching token becomes
    an AuthContext whose uid is a short fingerprint of the token.
    """

    def __init__(self, tokens: set[str]) -> None:
        self._tokens = {t for t in tokens if t}

    def check(self, auth_header: str | None) -> AuthResult:
        if not auth_header:
            return AuthResult(allowed=False, reason="Missing Authorization header")

        if not auth_header.startswith("Bearer "):
            return AuthResult(allowed=False, reason="Invalid authorization scheme")

        presented = auth_header[7:].strip()
        for token in self._tokens:
            if secrets.compare_digest(presented, token):
                uid = "token:" + hashlib.sha256(token.encode()).hexdigest()[:12]
                return AuthResult(allowed=True, reason="Authenticated", context=AuthContext(uid))

        return AuthResult(allowed=False, reason="Invalid credentials")

    @property
    def enabled(self) -> bool:
        return bool(self._tokens)
