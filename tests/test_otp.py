from datetime import timedelta

from sqlalchemy import select

from taskhub.auth import otp
from taskhub.auth.tokens import now_utc
from taskhub.config import settings
from taskhub.models.user import User

def request_code(client, email: str) -> str:
    r = client.post("/api/auth/otp/request", json={"email": email})
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["status"] == "ok"
    code = body["data"]["otp"]
    assert code, "expected otp to be echoed outside prod"
    return code

def test_new_otp_is_six_digits():
    for _ in range(200):
        code = otp.new_otp()
        assert len(code) == 6
        assert 100000 <= int(code) <= 999999

def test_request_creates_placeholder_user(client, db_session):
    code = request_code(client, "fresh@example.com")

    user = db_session.scalar(select(User).where(User.email == "fresh@example.com"))
    assert user is not None
    assert user.password_hash is None
    assert user.username == "fresh"
    assert user.otp_value == code
    assert user.otp_expires_at is not None

def test_verify_issues_session_and_is_single_use(client):
    code = request_code(client, "otp@example.com")

    r = client.post("/api/auth/otp/verify", json={"email": "otp@example.com", "otp": code})
    assert r.status_code == 200, r.text
    assert r.json()["data"]["accessToken"]
    assert any(h.startswith("rt=") for h in r.headers.get_list("set-cookie"))

    r = client.post("/api/auth/otp/verify", json={"email": "otp@example.com", "otp": code})
    assert r.status_code == 401
    assert r.json() == {"status": "error", "message": "Invalid OTP"}

def test_wrong_code_is_401(client):
    code = request_code(client, "otp@example.com")
    wrong = "100000" if code != "100000" else "100001"

    r = client.post("/api/auth/otp/verify", json={"email": "otp@example.com", "otp": wrong})
    assert r.status_code == 401

    # a failed attempt leaves the active code usable
    r = client.post("/api/auth/otp/verify", json={"email": "otp@example.com", "otp": code})
    assert r.status_code == 200

def test_expired_code_is_401(client, db_session):
    code = request_code(client, "late@example.com")

    user = db_session.scalar(select(User).where(User.email == "late@example.com"))
    user.otp_expires_at = now_utc() - timedelta(seconds=1)
    db_session.commit()

    r = client.post("/api/auth/otp/verify", json={"email": "late@example.com", "otp": code})
    assert r.status_code == 401

def test_new_request_supersedes_previous_code(client, db_session, monkeypatch):
    codes = iter(["111111", "222222"])
    monkeypatch.setattr(otp, "new_otp", lambda: next(codes))

    first = request_code(client, "twice@example.com")
    second = request_code(client, "twice@example.com")
    assert (first, second) == ("111111", "222222")

    r = client.post("/api/auth/otp/verify", json={"email": "twice@example.com", "otp": first})
    assert r.status_code == 401
    r = client.post("/api/auth/otp/verify", json={"email": "twice@example.com", "otp": second})
    assert r.status_code == 200

def test_unknown_email_verify_is_401(client):
    r = client.post("/api/auth/otp/verify", json={"email": "ghost@example.com", "otp": "123456"})
    assert r.status_code == 401

def test_missing_fields_are_422(client):
    r = client.post("/api/auth/otp/request", json={})
    assert r.status_code == 422
    assert r.json()["status"] == "error"

    r = client.post("/api/auth/otp/verify", json={"email": "x@example.com"})
    assert r.status_code == 422

def test_prod_does_not_echo_code(client, monkeypatch):
    monkeypatch.setattr(settings, "app_env", "prod")
    r = client.post("/api/auth/otp/request", json={"email": "quiet@example.com"})
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "ok"
    assert body["data"]["otp"] is None

def test_otp_login_keeps_existing_password(client, demo_user, db_session):
    code = request_code(client, "demo@example.com")
    r = client.post("/api/auth/otp/verify", json={"email": "demo@example.com", "otp": code})
    assert r.status_code == 200

    r = client.post("/api/auth/login", json={"email": "demo@example.com", "password": "Demo1234"})
    assert r.status_code == 200

def test_request_when_row_appears_concurrently(client, db_session, make_user, monkeypatch):
    make_user("race@example.com")
    real_find = otp.find_user_by_email
    calls = []

    def stale_first_lookup(db, email):
        # the first lookup runs before the other request's insert is visible
        calls.append(email)
        if len(calls) == 1:
            return None
        return real_find(db, email)

    monkeypatch.setattr(otp, "find_user_by_email", stale_first_lookup)

    code = request_code(client, "race@example.com")
    assert len(calls) == 2

    users = db_session.scalars(select(User).where(User.email == "race@example.com")).all()
    assert len(users) == 1
    assert users[0].otp_value == code
