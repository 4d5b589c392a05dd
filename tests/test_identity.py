import uuid

from taskhub.auth.tokens import AccessClaims, RefreshClaims, sign_access_token, sign_refresh_token

def auth(jwt: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {jwt}"}

def test_missing_header_is_unauthorized(client):
    r = client.get("/api/users/me")
    assert r.status_code == 401
    assert r.json() == {"status": "error", "message": "Unauthorized"}

def test_non_bearer_scheme_is_unauthorized(client):
    r = client.get("/api/users/me", headers={"Authorization": "Basic Zm9vOmJhcg=="})
    assert r.status_code == 401
    assert r.json()["message"] == "Unauthorized"

def test_invalid_token(client):
    r = client.get("/api/users/me", headers=auth("garbage"))
    assert r.status_code == 401
    assert r.json() == {"status": "error", "message": "Invalid token"}

def test_expired_token(client, demo_user):
    token = sign_access_token(AccessClaims(sub=str(demo_user.id)), "-1s")
    r = client.get("/api/users/me", headers=auth(token))
    assert r.status_code == 401
    assert r.json()["message"] == "Invalid token"

def test_refresh_token_is_not_a_bearer(client, demo_user):
    token = sign_refresh_token(RefreshClaims(sub=str(demo_user.id), token_id=str(demo_user.id)))
    r = client.get("/api/users/me", headers=auth(token))
    assert r.status_code == 401

def test_non_uuid_subject_is_invalid(client):
    r = client.get("/api/users/me", headers=auth(sign_access_token(AccessClaims(sub="user_1"))))
    assert r.status_code == 401

def test_me(client, demo_user):
    token = sign_access_token(AccessClaims(sub=str(demo_user.id)))
    r = client.get("/api/users/me", headers=auth(token))
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["id"] == str(demo_user.id)
    assert data["email"] == "demo@example.com"

    # lowercase scheme is accepted too
    r = client.get("/api/users/me", headers={"authorization": f"bearer {token}"})
    assert r.status_code == 200

def test_me_for_deleted_user_is_404(client):
    token = sign_access_token(AccessClaims(sub=str(uuid.uuid4())))
    r = client.get("/api/users/me", headers=auth(token))
    assert r.status_code == 404

def test_update_username(client, demo_user):
    token = sign_access_token(AccessClaims(sub=str(demo_user.id)))
    r = client.patch("/api/users/me", json={"username": "demo2"}, headers=auth(token))
    assert r.status_code == 200
    assert r.json()["data"]["username"] == "demo2"

    r = client.patch("/api/users/me", json={"username": "x"}, headers=auth(token))
    assert r.status_code == 422
