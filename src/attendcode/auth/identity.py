"""Identity token verification (HS256 JWT).

Tokens are minted by the identity service; ``issue_token`` exists for
development terminals and tests.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta

import jwt
from pydantic import ValidationError

from attendcode.config import settings
from attendcode.errors import AuthenticationError, ConfigurationError
from attendcode.models import Identity, Role

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_TTL = timedelta(hours=1)


class TokenVerifier:
    """Turns a bearer token into an ``Identity`` or raises ``AuthenticationError``."""

    def __init__(
        self,
        secret: str | None = None,
        algorithm: str | None = None,
        audience: str | None = None,
    ) -> None:
        self.secret = secret if secret is not None else settings.identity_token_secret
        self.algorithm = algorithm or settings.identity_token_algorithm
        self.audience = audience or settings.identity_token_audience

    def _key(self) -> str:
        if not self.secret:
            raise ConfigurationError("ATTENDCODE_IDENTITY_TOKEN_SECRET not set")
        return self.secret

    def verify(self, token: str | None) -> Identity:
        if not token or not token.strip():
            raise AuthenticationError("Missing identity token")
        try:
            claims = jwt.decode(
                token.strip(),
                self._key(),
                algorithms=[self.algorithm],
                audience=self.audience,
                options={"require": ["exp", "sub", "org", "role"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise AuthenticationError("Identity token expired") from e
        except jwt.InvalidTokenError as e:
            raise AuthenticationError(f"Invalid identity token: {e}") from e

        try:
            return Identity(uid=claims["sub"], scope_id=claims["org"], role=claims["role"])
        except ValidationError as e:
            raise AuthenticationError("Identity token carries an unknown role") from e

    def issue(self, uid: str, scope_id: str, role: Role | str,
              ttl: timedelta = DEFAULT_TOKEN_TTL) -> str:
        now = datetime.now(UTC)
        payload = {
            "sub": uid,
            "org": scope_id,
            "role": str(role),
            "aud": self.audience,
            "iat": now,
            "exp": now + ttl,
        }
        return jwt.encode(payload, self._key(), algorithm=self.algorithm)


def issue_token(uid: str, scope_id: str, role: Role | str,
                ttl: timedelta = DEFAULT_TOKEN_TTL) -> str:
    """Mint an identity token with the configured signing secret."""
    return TokenVerifier().issue(uid, scope_id, role, ttl)
