import json
from typing import Any

import structlog
from fastapi import APIRouter, Cookie, Depends, Request, Response
from pydantic import BaseModel, ValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from taskhub.auth import otp
from taskhub.auth.crypto import hash_password, verify_password
from taskhub.auth.tokens import (
    AccessClaims,
    InvalidTokenError,
    RefreshClaims,
    sign_access_token,
    sign_refresh_token,
    verify_refresh_token,
)
from taskhub.config import REFRESH_COOKIE_NAME, REFRESH_COOKIE_PATH, settings
from taskhub.db import get_db
from taskhub.errors import Conflict, InvalidCredentials, Unauthorized, ValidationFailed, error_details
from taskhub.models.user import User
from taskhub.ratelimit import rate_limit
from taskhub.schemas.auth import (
    PASSWORD_MIN_LENGTH,
    AccessTokenOut,
    CheckEmailIn,
    CheckEmailOut,
    CredentialsIn,
    OtpRequestIn,
    OtpRequestOut,
    OtpVerifyIn,
    SignupIn,
)
from taskhub.schemas.common import Envelope, OkOut

log = structlog.get_logger()

router = APIRouter(prefix="/api/auth", tags=["auth"])

def normalize_email(email: str) -> str:
    return email.lower().strip()

async def json_body(request: Request) -> Any:
    # undecodable json is a payload error like any other
    raw = await request.body()
    if not raw.strip():
        return None
    try:
        return json.loads(raw)
    except ValueError as exc:
        raise ValidationFailed(
            "Invalid payload",
            errors=[{"loc": ["body"], "msg": "Invalid JSON", "type": "json_invalid"}],
        ) from exc

def parse_payload(model: type[BaseModel], body: Any) -> Any:
    # login/signup answer 400 on a bad payload, not the framework's 422
    try:
        return model.model_validate(body or {})
    except ValidationError as exc:
        raise ValidationFailed("Invalid payload", errors=error_details(exc.errors())) from exc

def set_refresh_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        REFRESH_COOKIE_NAME,
        token,
        max_age=int(settings.refresh_ttl.total_seconds()),
        path=REFRESH_COOKIE_PATH,
        secure=settings.cookie_secure,
        httponly=True,
        samesite=settings.cookie_samesite,
    )

def clear_refresh_cookie(response: Response) -> None:
    response.delete_cookie(
        REFRESH_COOKIE_NAME,
        path=REFRESH_COOKIE_PATH,
        secure=settings.cookie_secure,
        httponly=True,
        samesite=settings.cookie_samesite,
    )

def issue_session(response: Response, user: User) -> Envelope[AccessTokenOut]:
    # org context is resolved per request, so the access token carries sub only
    user_id = str(user.id)
    access = sign_access_token(AccessClaims(sub=user_id))
    refresh = sign_refresh_token(RefreshClaims(sub=user_id, token_id=user_id))
    set_refresh_cookie(response, refresh)
    return Envelope(data=AccessTokenOut(access_token=access))

@router.post("/check-email", response_model=Envelope[CheckEmailOut])
def check_email(payload: CheckEmailIn, db: Session = Depends(get_db)) -> Envelope[CheckEmailOut]:
    user = otp.find_user_by_email(db, normalize_email(payload.email))
    exists = user is not None and user.password_hash is not None
    return Envelope(data=CheckEmailOut(exists=exists))

@router.post(
    "/signup",
    response_model=Envelope[AccessTokenOut],
    dependencies=[Depends(rate_limit("auth:signup", settings.rate_limit_signup_per_min))],
)
def signup(
    response: Response,
    body: Any = Depends(json_body),
    db: Session = Depends(get_db),
) -> Envelope[AccessTokenOut]:
    payload: SignupIn = parse_payload(SignupIn, body)
    email = normalize_email(payload.email)

    user = otp.find_user_by_email(db, email)
    if user is not None and user.password_hash is not None:
        raise Conflict("Account already exists")

    if user is None:
        user = User(email=email, username=otp.default_username(email))
        db.add(user)
    # otp-only records get a password attached
    user.password_hash = hash_password(payload.password)

    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise Conflict("Account already exists") from exc

    log.info("auth.signup", user_id=str(user.id))
    return issue_session(response, user)

@router.post(
    "/login",
    response_model=Envelope[AccessTokenOut],
    dependencies=[Depends(rate_limit("auth:login", settings.rate_limit_login_per_min))],
)
def login(
    response: Response,
    body: Any = Depends(json_body),
    db: Session = Depends(get_db),
) -> Envelope[AccessTokenOut]:
    payload: CredentialsIn = parse_payload(CredentialsIn, body)
    email = normalize_email(payload.email)

    # signup never stores a shorter password, so this cannot match
    if len(payload.password) < PASSWORD_MIN_LENGTH:
        log.info("auth.login_failed", reason="short_password")
        raise InvalidCredentials()

    user = otp.find_user_by_email(db, email)
    if user is None or user.password_hash is None:
        log.info("auth.login_failed", reason="no_password_account")
        raise InvalidCredentials()

    if not verify_password(payload.password, user.password_hash):
        log.info("auth.login_failed", reason="password_mismatch", user_id=str(user.id))
        raise InvalidCredentials()

    log.info("auth.login", user_id=str(user.id))
    return issue_session(response, user)

@router.post(
    "/refresh",
    response_model=Envelope[AccessTokenOut],
    dependencies=[Depends(rate_limit("auth:refresh", settings.rate_limit_refresh_per_min))],
)
def refresh(
    response: Response,
    rt: str | None = Cookie(default=None, alias=REFRESH_COOKIE_NAME),
) -> Envelope[AccessTokenOut]:
    if not rt:
        raise Unauthorized("Missing refresh token")

    try:
        claims = verify_refresh_token(rt)
    except InvalidTokenError as exc:
        log.info("auth.refresh_rejected", reason=str(exc))
        raise Unauthorized("Invalid refresh token") from exc

    access = sign_access_token(AccessClaims(sub=claims.sub))

    # rotate: same sub/tokenId, fresh signature and expiry
    set_refresh_cookie(response, sign_refresh_token(RefreshClaims(sub=claims.sub, token_id=claims.token_id)))
    log.info("auth.refresh_rotated", user_id=claims.sub)
    return Envelope(data=AccessTokenOut(access_token=access))

@router.post("/logout", response_model=OkOut)
def logout(response: Response) -> OkOut:
    # idempotent: clearing an absent cookie is a no-op
    clear_refresh_cookie(response)
    return OkOut(message="Logged out")

@router.post(
    "/otp/request",
    response_model=Envelope[OtpRequestOut],
    dependencies=[Depends(rate_limit("auth:otp_request", settings.rate_limit_otp_request_per_min))],
)
def otp_request(payload: OtpRequestIn, db: Session = Depends(get_db)) -> Envelope[OtpRequestOut]:
    code = otp.request_otp(db, normalize_email(payload.email))
    log.info("auth.otp_issued")

    # same shape whether or not the email was known
    if settings.is_prod:
        return Envelope(data=OtpRequestOut(), message="OTP issued")
    return Envelope(data=OtpRequestOut(otp=code), message="OTP issued")

@router.post(
    "/otp/verify",
    response_model=Envelope[AccessTokenOut],
    dependencies=[Depends(rate_limit("auth:otp_verify", settings.rate_limit_otp_verify_per_min))],
)
def otp_verify(
    payload: OtpVerifyIn,
    response: Response,
    db: Session = Depends(get_db),
) -> Envelope[AccessTokenOut]:
    user = otp.verify_otp(db, normalize_email(payload.email), payload.otp.strip())
    log.info("auth.otp_verified", user_id=str(user.id))
    return issue_session(response, user)
