from datetime import timedelta

import jwt
import pytest
from pydantic import ValidationError

from taskhub.auth.tokens import (
    AccessClaims,
    InvalidTokenError,
    RefreshClaims,
    sign_access_token,
    sign_refresh_token,
    verify_access_token,
    verify_refresh_token,
)
from taskhub.config import Settings, parse_duration, settings

def _tamper(token: str) -> str:
    header, payload, sig = token.split(".")
    i = len(sig) // 2
    sig = sig[:i] + ("A" if sig[i] != "A" else "B") + sig[i + 1 :]
    return ".".join([header, payload, sig])

def test_access_round_trip_with_org_and_roles():
    token = sign_access_token(AccessClaims(sub="user_1", org_id="org_1", roles=["ADMIN"]), "1h")
    claims = verify_access_token(token)
    assert claims.sub == "user_1"
    assert claims.org_id == "org_1"
    assert claims.roles == ["ADMIN"]

def test_access_token_wire_claims():
    token = sign_access_token(AccessClaims(sub="user_1", org_id="org_1"))
    payload = jwt.decode(token, options={"verify_signature": False})
    assert payload["sub"] == "user_1"
    assert payload["orgId"] == "org_1"
    assert "roles" not in payload
    # default lifetime 15m
    assert payload["exp"] - payload["iat"] == 15 * 60

def test_refresh_round_trip():
    token = sign_refresh_token(RefreshClaims(sub="user_2", token_id="rotation_1"), "7d")
    claims = verify_refresh_token(token)
    assert claims.sub == "user_2"
    assert claims.token_id == "rotation_1"

    payload = jwt.decode(token, options={"verify_signature": False})
    assert payload["tokenId"] == "rotation_1"
    assert payload["exp"] - payload["iat"] == 7 * 24 * 3600

def test_tampered_token_fails():
    token = sign_access_token(AccessClaims(sub="user_1"))
    with pytest.raises(InvalidTokenError):
        verify_access_token(_tamper(token))

def test_malformed_token_fails():
    with pytest.raises(InvalidTokenError):
        verify_access_token("not.a.jwt")
    with pytest.raises(InvalidTokenError):
        verify_refresh_token("")

def test_expired_token_fails():
    token = sign_access_token(AccessClaims(sub="user_1"), "-1s")
    with pytest.raises(InvalidTokenError):
        verify_access_token(token)

    token = sign_refresh_token(RefreshClaims(sub="user_1", token_id="t"), timedelta(seconds=-1))
    with pytest.raises(InvalidTokenError):
        verify_refresh_token(token)

def test_refresh_token_is_not_an_access_token():
    refresh = sign_refresh_token(RefreshClaims(sub="user_1", token_id="user_1"))
    with pytest.raises(InvalidTokenError):
        verify_access_token(refresh)

def test_access_token_is_not_a_refresh_token():
    access = sign_access_token(AccessClaims(sub="user_1"))
    with pytest.raises(InvalidTokenError):
        verify_refresh_token(access)

def test_secret_isolation_even_with_matching_type_claim():
    # forged with the refresh secret but claiming to be an access token
    forged = jwt.encode(
        {"sub": "user_1", "typ": "access", "exp": 4102444800},
        settings.refresh_token_secret,
        algorithm="HS256",
    )
    with pytest.raises(InvalidTokenError):
        verify_access_token(forged)

def test_reissued_tokens_differ():
    a = sign_refresh_token(RefreshClaims(sub="u", token_id="u"))
    b = sign_refresh_token(RefreshClaims(sub="u", token_id="u"))
    assert a != b

@pytest.mark.parametrize(
    "raw,expected",
    [
        ("15m", timedelta(minutes=15)),
        ("7d", timedelta(days=7)),
        ("1h", timedelta(hours=1)),
        ("30s", timedelta(seconds=30)),
        ("-1s", timedelta(seconds=-1)),
        (90, timedelta(seconds=90)),
    ],
)
def test_parse_duration(raw, expected):
    assert parse_duration(raw) == expected

def test_parse_duration_rejects_garbage():
    with pytest.raises(ValueError):
        parse_duration("15 minutes")

def test_settings_require_distinct_secrets():
    with pytest.raises(ValidationError):
        Settings(jwt_secret="same-secret", refresh_token_secret="same-secret")

def test_settings_reject_bad_ttl():
    with pytest.raises(ValidationError):
        Settings(jwt_secret="a" * 32, refresh_token_secret="b" * 32, access_token_ttl="soon")

def test_secrets_are_read_from_environment(monkeypatch):
    monkeypatch.setenv("JWT_SECRET", "env-access-secret")
    monkeypatch.setenv("REFRESH_TOKEN_SECRET", "env-refresh-secret")
    s = Settings(_env_file=None)
    assert s.jwt_secret == "env-access-secret"
    assert s.refresh_token_secret == "env-refresh-secret"

def test_secrets_are_required(monkeypatch):
    monkeypatch.delenv("JWT_SECRET", raising=False)
    monkeypatch.delenv("REFRESH_TOKEN_SECRET", raising=False)
    with pytest.raises(ValidationError):
        Settings(_env_file=None)
