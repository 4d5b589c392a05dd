import uuid
from dataclasses import dataclass

import structlog
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from taskhub.auth.tokens import InvalidTokenError, verify_access_token
from taskhub.db import get_db
from taskhub.errors import NotFound, Unauthorized
from taskhub.models.user import User

log = structlog.get_logger()

bearer = HTTPBearer(auto_error=False)

@dataclass(frozen=True)
class Identity:
    id: str
    org_id: str | None = None
    roles: list[str] | None = None

    @property
    def user_id(self) -> uuid.UUID:
        return uuid.UUID(self.id)

def get_identity(
    request: Request,
    creds: HTTPAuthorizationCredentials | None = Depends(bearer),
) -> Identity:
    if creds is None or creds.scheme.lower() != "bearer" or not creds.credentials:
        raise Unauthorized("Unauthorized")

    try:
        claims = verify_access_token(creds.credentials)
        uuid.UUID(claims.sub)
    except (InvalidTokenError, ValueError) as exc:
        log.info("auth.invalid_access_token", path=request.url.path, reason=str(exc))
        raise Unauthorized("Invalid token") from exc

    identity = Identity(id=claims.sub, org_id=claims.org_id, roles=claims.roles)
    request.state.identity = identity
    return identity

def get_current_user(
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
) -> User:
    user = db.get(User, identity.user_id)
    if user is None:
        raise NotFound("User not found")
    return user
