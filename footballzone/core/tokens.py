"""JWT access/refresh token issuing and verification (python-jose)."""

import re
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple

from jose import ExpiredSignatureError, JWTError, jwt
from pydantic import BaseModel

from footballzone.core.config import Settings
from footballzone.core.exceptions import TokenExpired, TokenInvalid, TokenMalformed
from footballzone.models.user import UserRole

BEARER_PREFIX = "Bearer "

DEFAULT_ACCESS_EXPIRY = timedelta(minutes=15)
DEFAULT_REFRESH_EXPIRY = timedelta(days=7)

_EXPIRY_RE = re.compile(r"^\s*(\d+)\s*([smhd]?)\s*$")
_UNIT_SECONDS = {"s": 1, "m": 60, "h": 3600, "d": 86400, "": 1}


class AccessClaims(BaseModel):
    """Identity carried by an access token."""
    user_id: int
    email: str
    role: UserRole
    name: str


class RefreshClaims(BaseModel):
    """A refresh token only identifies the user; role and email are re-read."""
    user_id: int
    token_version: Optional[int] = None


def parse_expiry(value: Optional[str], default: timedelta) -> timedelta:
    """Parse ``<int><unit>`` with unit in s/m/h/d; a bare integer means seconds."""
    match = _EXPIRY_RE.match(value or "")
    if not match or int(match.group(1)) <= 0:
        return default
    return timedelta(seconds=int(match.group(1)) * _UNIT_SECONDS[match.group(2)])


def extract_bearer(header: Optional[str]) -> Optional[str]:
    """Return the token of an ``Authorization: Bearer <token>`` header."""
    if not header or not header.startswith(BEARER_PREFIX):
        return None
    token = header[len(BEARER_PREFIX):]
    return token or None


class TokenService:
    """Issues and verifies signed access and refresh tokens."""

    def __init__(self, settings: Settings):
        self.secret = settings.JWT_SECRET
        self.refresh_secret = settings.JWT_REFRESH_SECRET
        self.algorithm = settings.JWT_ALGORITHM
        self.issuer = settings.JWT_ISSUER
        self.audience = settings.JWT_AUDIENCE
        self.access_expiry = parse_expiry(settings.JWT_EXPIRY, DEFAULT_ACCESS_EXPIRY)
        self.refresh_expiry = parse_expiry(settings.JWT_REFRESH_EXPIRY, DEFAULT_REFRESH_EXPIRY)

    # ---- issuing ----

    def _encode(self, claims: Dict[str, Any], secret: str, lifetime: timedelta) -> str:
        now = datetime.now(timezone.utc)
        to_encode = dict(claims)
        to_encode.update({
            "iat": now,
            "exp": now + lifetime,
            "iss": self.issuer,
            "aud": self.audience,
        })
        return jwt.encode(to_encode, secret, algorithm=self.algorithm)

    def issue_access_token(
        self, identity: AccessClaims, expires_in: Optional[timedelta] = None
    ) -> str:
        """Create a short-lived access token for an identity."""
        claims = {
            "sub": str(identity.user_id),
            "email": identity.email,
            "role": identity.role.value,
            "name": identity.name,
            "type": "access",
        }
        return self._encode(claims, self.secret, expires_in or self.access_expiry)

    def issue_refresh_token(
        self,
        user_id: int,
        token_version: Optional[int] = None,
        expires_in: Optional[timedelta] = None,
    ) -> str:
        """Create a long-lived refresh token carrying only the user id."""
        claims: Dict[str, Any] = {"sub": str(user_id), "type": "refresh"}
        if token_version is not None:
            claims["ver"] = token_version
        return self._encode(claims, self.refresh_secret, expires_in or self.refresh_expiry)

    def issue_pair(self, identity: AccessClaims, token_version: Optional[int] = None) -> Tuple[str, str, datetime]:
        """Return ``(access_token, refresh_token, access_expires_at)``."""
        access = self.issue_access_token(identity)
        refresh = self.issue_refresh_token(identity.user_id, token_version)
        return access, refresh, datetime.now(timezone.utc) + self.access_expiry

    # ---- verification ----

    def _decode(self, token: str, secret: str, expected_type: str, label: str) -> Dict[str, Any]:
        try:
            jwt.get_unverified_header(token)
        except JWTError as e:
            raise TokenMalformed(f"Malformed {label} token") from e

        try:
            payload = jwt.decode(
                token,
                secret,
                algorithms=[self.algorithm],
                audience=self.audience,
                issuer=self.issuer,
            )
        except ExpiredSignatureError as e:
            raise TokenExpired(f"{label.capitalize()} token expired") from e
        except JWTError as e:
            raise TokenInvalid(f"Invalid {label} token") from e

        if payload.get("type") != expected_type or not str(payload.get("sub", "")).isdigit():
            raise TokenInvalid(f"Invalid {label} token")
        return payload

    def verify_access_token(self, token: str) -> AccessClaims:
        """Decode an access token into the identity it carries.

        Raises:
            TokenExpired: past expiry.
            TokenInvalid: signature, issuer, audience or type mismatch.
            TokenMalformed: not a JWT.
        """
        payload = self._decode(token, self.secret, "access", "access")
        try:
            return AccessClaims(
                user_id=int(payload["sub"]),
                email=payload["email"],
                role=UserRole(payload["role"]),
                name=payload["name"],
            )
        except (KeyError, ValueError) as e:
            raise TokenInvalid("Invalid access token") from e

    def verify_refresh_token(self, token: str) -> RefreshClaims:
        """Decode a refresh token. Same failure kinds as access tokens."""
        payload = self._decode(token, self.refresh_secret, "refresh", "refresh")
        return RefreshClaims(user_id=int(payload["sub"]), token_version=payload.get("ver"))
