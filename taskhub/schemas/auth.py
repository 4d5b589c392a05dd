from pydantic import BaseModel, EmailStr, Field, field_validator

from taskhub.schemas.common import CamelModel

PASSWORD_MIN_LENGTH = 8
# bcrypt only reads the first 72 bytes
PASSWORD_MAX_BYTES = 72

class CheckEmailIn(BaseModel):
    email: EmailStr

class CheckEmailOut(CamelModel):
    exists: bool

class CredentialsIn(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)

class SignupIn(CredentialsIn):
    password: str = Field(min_length=PASSWORD_MIN_LENGTH)

    @field_validator("password")
    @classmethod
    def _fits_bcrypt(cls, v: str) -> str:
        if len(v.encode("utf-8")) > PASSWORD_MAX_BYTES:
            raise ValueError(f"password must be at most {PASSWORD_MAX_BYTES} bytes")
        return v

class OtpRequestIn(BaseModel):
    email: EmailStr

class OtpRequestOut(CamelModel):
    # echoed outside prod only; delivery is not wired up
    otp: str | None = None

class OtpVerifyIn(BaseModel):
    email: EmailStr
    otp: str = Field(min_length=1, max_length=16)

class AccessTokenOut(CamelModel):
    access_token: str
