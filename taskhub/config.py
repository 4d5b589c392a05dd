import re
from datetime import timedelta

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_DURATION_RE = re.compile(r"^\s*(-?\d+)\s*([smhd])\s*$")
_UNIT_SECONDS = {"s": 1, "m": 60, "h": 3600, "d": 86400}

REFRESH_COOKIE_NAME = "rt"
REFRESH_COOKIE_PATH = "/api/auth/refresh"

def parse_duration(value: str | int | timedelta) -> timedelta:
    # "15m", "7d", "-1s"; bare ints are seconds
    if isinstance(value, timedelta):
        return value
    if isinstance(value, int):
        return timedelta(seconds=value)

    m = _DURATION_RE.match(value)
    if m is None:
        raise ValueError(f"invalid duration: {value!r}")
    amount, unit = m.groups()
    return timedelta(seconds=int(amount) * _UNIT_SECONDS[unit])

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    app_host: str = "0.0.0.0"
    app_port: int = 4000

    database_url: str = "postgresql+psycopg://app:app@db:5432/app"
    redis_url: str = "redis://redis:6379/0"

    log_level: str = "info"
    log_format: str = "console"

    # signing secrets, required and distinct
    jwt_secret: str
    refresh_token_secret: str

    bcrypt_rounds: int = Field(default=10, ge=4, le=31)
    access_token_ttl: str = "15m"
    refresh_token_ttl: str = "7d"

    otp_ttl_minutes: int = 10
    invite_ttl_hours: int = 72

    # rate limiting (redis)
    rate_limit_enabled: bool = True
    rate_limit_login_per_min: int = 20
    rate_limit_signup_per_min: int = 10
    rate_limit_refresh_per_min: int = 60
    rate_limit_otp_request_per_min: int = 5
    rate_limit_otp_verify_per_min: int = 20

    @field_validator("access_token_ttl", "refresh_token_ttl")
    @classmethod
    def _check_ttl(cls, v: str) -> str:
        parse_duration(v)
        return v

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, v: str) -> str:
        v = v.lower()
        if v not in {"debug", "info", "warning", "error", "critical"}:
            return "info"
        return v

    @model_validator(mode="after")
    def _distinct_secrets(self) -> "Settings":
        if self.jwt_secret == self.refresh_token_secret:
            raise ValueError("jwt_secret and refresh_token_secret must differ")
        return self

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"

    @property
    def access_ttl(self) -> timedelta:
        return parse_duration(self.access_token_ttl)

    @property
    def refresh_ttl(self) -> timedelta:
        return parse_duration(self.refresh_token_ttl)

    @property
    def cookie_samesite(self) -> str:
        return "strict" if self.is_prod else "lax"

    @property
    def cookie_secure(self) -> bool:
        return self.is_prod

settings = Settings()
