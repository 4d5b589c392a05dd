"""Access and refresh token signing.

Two token classes with independent secrets and lifetimes. Access tokens ride
on every request as a bearer header; refresh tokens live only in the
path-scoped ``rt`` cookie. A token of one class never verifies as the other:
the secrets differ and each token carries a ``typ`` claim checked on decode.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

import jwt

from taskhub.config import parse_duration, settings

ALGORITHM = "HS256"

class InvalidTokenError(Exception):
    """Signature, shape or expiry failure on either token class."""

@dataclass(frozen=True)
class AccessClaims:
    sub: str
    org_id: str | None = None
    roles: list[str] | None = field(default=None)

@dataclass(frozen=True)
class RefreshClaims:
    sub: str
    token_id: str

def now_utc() -> datetime:
    return datetime.now(timezone.utc)

def as_utc(dt: datetime) -> datetime:
    # sqlite hands back naive datetimes
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt

def _encode(payload: dict, secret: str, expires_in: str | timedelta) -> str:
    iat = now_utc()
    exp = iat + parse_duration(expires_in)
    payload = {
        **payload,
        "iat": int(iat.timestamp()),
        "exp": int(exp.timestamp()),
        # unique per issue so a re-issued token never equals its predecessor
        "jti": uuid.uuid4().hex,
    }
    return jwt.encode(payload, secret, algorithm=ALGORITHM)

def _decode(token: str, secret: str, typ: str) -> dict:
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[ALGORITHM],
            options={"require": ["sub", "exp"]},
        )
    except jwt.PyJWTError as exc:
        raise InvalidTokenError(str(exc)) from exc

    if payload.get("typ") != typ:
        raise InvalidTokenError("unexpected token type")
    return payload

def sign_access_token(claims: AccessClaims, expires_in: str | timedelta | None = None) -> str:
    payload: dict = {"sub": str(claims.sub), "typ": "access"}
    if claims.org_id is not None:
        payload["orgId"] = str(claims.org_id)
    if claims.roles is not None:
        payload["roles"] = list(claims.roles)
    return _encode(payload, settings.jwt_secret, expires_in or settings.access_token_ttl)

def verify_access_token(token: str) -> AccessClaims:
    payload = _decode(token, settings.jwt_secret, "access")
    roles = payload.get("roles")
    if roles is not None and not isinstance(roles, list):
        raise InvalidTokenError("malformed roles claim")
    return AccessClaims(sub=payload["sub"], org_id=payload.get("orgId"), roles=roles)

def sign_refresh_token(claims: RefreshClaims, expires_in: str | timedelta | None = None) -> str:
    payload = {"sub": str(claims.sub), "tokenId": str(claims.token_id), "typ": "refresh"}
    return _encode(payload, settings.refresh_token_secret, expires_in or settings.refresh_token_ttl)

def verify_refresh_token(token: str) -> RefreshClaims:
    payload = _decode(token, settings.refresh_token_secret, "refresh")
    token_id = payload.get("tokenId")
    if not isinstance(token_id, str) or not token_id:
        raise InvalidTokenError("missing tokenId claim")
    return RefreshClaims(sub=payload["sub"], token_id=token_id)
