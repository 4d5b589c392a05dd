import hmac
import secrets
from datetime import timedelta

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from taskhub.auth.tokens import as_utc, now_utc
from taskhub.config import settings
from taskhub.errors import InvalidOtp
from taskhub.models.user import User

OTP_MIN = 100000
OTP_MAX = 999999

def new_otp() -> str:
    return str(OTP_MIN + secrets.randbelow(OTP_MAX - OTP_MIN + 1))

def otp_expiry():
    return now_utc() + timedelta(minutes=settings.otp_ttl_minutes)

def default_username(email: str) -> str:
    return email.split("@", 1)[0]

def find_user_by_email(db: Session, email: str) -> User | None:
    return db.scalar(select(User).where(User.email == email))

def request_otp(db: Session, email: str) -> str:
    # a new request supersedes any active code
    code = new_otp()
    expires_at = otp_expiry()

    user = find_user_by_email(db, email)
    if user is None:
        db.add(User(email=email, username=default_username(email), otp_value=code, otp_expires_at=expires_at))
        try:
            db.commit()
            return code
        except IntegrityError:
            # another request created the row first; update it instead
            db.rollback()
            user = find_user_by_email(db, email)
            if user is None:
                raise

    user.otp_value = code
    user.otp_expires_at = expires_at
    db.commit()
    return code

def verify_otp(db: Session, email: str, code: str) -> User:
    user = find_user_by_email(db, email)
    if user is None or not user.otp_value or user.otp_expires_at is None:
        raise InvalidOtp()

    if not hmac.compare_digest(user.otp_value.encode("utf-8"), code.encode("utf-8")):
        raise InvalidOtp()
    if now_utc() > as_utc(user.otp_expires_at):
        raise InvalidOtp()

    # single use
    user.otp_value = None
    user.otp_expires_at = None
    db.commit()
    return user
