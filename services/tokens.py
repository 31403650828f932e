"""
Token issuer: signs access and refresh JWTs.

Access and refresh tokens use different secrets so a leaked access secret
cannot be used to forge refresh tokens and the other way round.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict

import jwt

from models.user import User
from services.errors import ExpiredTokenError, InvalidTokenError
from utils.clock import utcnow
from utils.security import decode_token, encode_token, generate_jti

ACCESS_TOKEN_LIFETIME = timedelta(hours=1)
REFRESH_TOKEN_LIFETIME = timedelta(days=7)


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    expires_in: int
    refresh_expires_at: datetime


@dataclass(frozen=True)
class AccessToken:
    access_token: str
    expires_in: int


class TokenIssuer:
    def __init__(
        self,
        access_secret: str,
        refresh_secret: str,
        *,
        algorithm: str = "HS256",
        issuer: str = "session-lifecycle-api",
        access_lifetime: timedelta = ACCESS_TOKEN_LIFETIME,
        refresh_lifetime: timedelta = REFRESH_TOKEN_LIFETIME,
        clock: Callable[[], datetime] = utcnow,
    ):
        if access_secret == refresh_secret:
            raise ValueError("access and refresh tokens must be signed with different secrets")
        self._access_secret = access_secret
        self._refresh_secret = refresh_secret
        self.algorithm = algorithm
        self.issuer = issuer
        self.access_lifetime = access_lifetime
        self.refresh_lifetime = refresh_lifetime
        self.clock = clock

    @classmethod
    def from_config(cls, config, clock: Callable[[], datetime] = utcnow) -> "TokenIssuer":
        return cls(
            config["JWT_SECRET"],
            config["JWT_REFRESH_SECRET"],
            algorithm=config.get("JWT_ALGORITHM", "HS256"),
            issuer=config.get("JWT_ISSUER", "session-lifecycle-api"),
            access_lifetime=config.get("ACCESS_TOKEN_EXPIRES", ACCESS_TOKEN_LIFETIME),
            refresh_lifetime=config.get("REFRESH_TOKEN_EXPIRES", REFRESH_TOKEN_LIFETIME),
            clock=clock,
        )

    @property
    def expires_in(self) -> int:
        return int(self.access_lifetime.total_seconds())

    def issue_access_token(self, user: User) -> AccessToken:
        claims = {"userId": str(user.id), "role": user.role, "type": "access", "iss": self.issuer}
        token = encode_token(claims, self._access_secret, self.algorithm, self.clock(), self.access_lifetime)
        return AccessToken(access_token=token, expires_in=self.expires_in)

    def issue_tokens(self, user: User) -> TokenPair:
        """Mint an access+refresh pair for ``user``. No I/O."""
        now = self.clock()
        access = self.issue_access_token(user)
        # tokenId makes every refresh token string unique; it is not a lookup key
        claims = {"userId": str(user.id), "tokenId": generate_jti(), "type": "refresh", "iss": self.issuer}
        refresh = encode_token(claims, self._refresh_secret, self.algorithm, now, self.refresh_lifetime)
        # exp is stored in whole seconds; keep the session row aligned with it
        refresh_exp = datetime.fromtimestamp(int((now + self.refresh_lifetime).timestamp()), tz=timezone.utc)
        return TokenPair(
            access_token=access.access_token,
            refresh_token=refresh,
            expires_in=access.expires_in,
            refresh_expires_at=refresh_exp,
        )

    def verify_refresh_token(self, token: str) -> Dict[str, Any]:
        return self._verify(token, self._refresh_secret, "refresh")

    def verify_access_token(self, token: str) -> Dict[str, Any]:
        return self._verify(token, self._access_secret, "access")

    def _verify(self, token: str, secret: str, expected_type: str) -> Dict[str, Any]:
        try:
            decoded = decode_token(token, secret, self.algorithm, expected_type, issuer=self.issuer)
        except jwt.ExpiredSignatureError as err:
            raise ExpiredTokenError(f"{expected_type} token has expired") from err
        except jwt.InvalidTokenError as err:
            raise InvalidTokenError(f"Invalid {expected_type} token format") from err
        if not decoded.get("userId"):
            raise InvalidTokenError(f"Invalid {expected_type} token format")
        return decoded
