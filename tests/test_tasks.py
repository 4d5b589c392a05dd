import uuid

import pytest

from taskhub.models.enums import Role
from taskhub.models.membership import Membership

PASSWORD = "Passw0rd!"

def login(client, email: str) -> dict[str, str]:
    r = client.post("/api/auth/login", json={"email": email, "password": PASSWORD})
    assert r.status_code == 200, r.text
    return {"Authorization": f"Bearer {r.json()['data']['accessToken']}"}

@pytest.fixture()
def board(client, db_session, make_user):
    owner = make_user("owner@example.com", PASSWORD)
    member = make_user("member@example.com", PASSWORD)
    outsider = make_user("outsider@example.com", PASSWORD)
    h = login(client, "owner@example.com")

    org_id = client.post("/api/orgs", json={"name": "tasks-org"}, headers=h).json()["data"]["id"]
    db_session.add(Membership(organization_id=uuid.UUID(org_id), user_id=member.id, role=Role.MEMBER))
    db_session.commit()

    team_id = client.post(f"/api/orgs/{org_id}/teams", json={"name": "core"}, headers=h).json()["data"]["id"]
    list_id = client.post(f"/api/teams/{team_id}/lists", json={"name": "backlog"}, headers=h).json()["data"]["id"]
    return {
        "h": h,
        "list_id": list_id,
        "owner_id": str(owner.id),
        "member_id": str(member.id),
        "outsider_id": str(outsider.id),
    }

def create_task(client, board, **fields):
    return client.post(f"/api/lists/{board['list_id']}/tasks", json=fields, headers=board["h"])

def test_assign_to_member(client, board):
    r = create_task(client, board, title="t", ownerId=board["member_id"])
    assert r.status_code == 201, r.text
    assert r.json()["data"]["ownerId"] == board["member_id"]

def test_assign_to_outsider_is_rejected(client, board):
    r = create_task(client, board, title="t", ownerId=board["outsider_id"])
    assert r.status_code == 422
    assert r.json()["message"] == "Invalid ownerId"

    r = create_task(client, board, title="t", ownerId=str(uuid.uuid4()))
    assert r.status_code == 422

    r = client.get(f"/api/lists/{board['list_id']}/tasks", headers=board["h"])
    assert r.json()["data"] == []

def test_reassign_checks_membership(client, board):
    task_id = create_task(client, board, title="t").json()["data"]["id"]

    r = client.patch(
        f"/api/tasks/{task_id}",
        json={"title": "renamed", "ownerId": board["outsider_id"]},
        headers=board["h"],
    )
    assert r.status_code == 422

    r = client.get(f"/api/tasks/{task_id}", headers=board["h"])
    assert r.json()["data"]["title"] == "t"
    assert r.json()["data"]["ownerId"] is None

    r = client.patch(f"/api/tasks/{task_id}", json={"ownerId": board["member_id"]}, headers=board["h"])
    assert r.status_code == 200
    assert r.json()["data"]["ownerId"] == board["member_id"]

    r = client.patch(f"/api/tasks/{task_id}", json={"ownerId": None}, headers=board["h"])
    assert r.status_code == 200
    assert r.json()["data"]["ownerId"] is None

def test_list_filters(client, board):
    a = create_task(client, board, title="a", ownerId=board["member_id"]).json()["data"]["id"]
    b = create_task(client, board, title="b", ownerId=board["owner_id"]).json()["data"]["id"]
    create_task(client, board, title="c")
    client.patch(f"/api/tasks/{b}", json={"status": "DONE"}, headers=board["h"])

    url = f"/api/lists/{board['list_id']}/tasks"

    r = client.get(url, headers=board["h"])
    assert len(r.json()["data"]) == 3

    r = client.get(url, params={"status": "DONE"}, headers=board["h"])
    assert [t["id"] for t in r.json()["data"]] == [b]

    r = client.get(url, params={"ownerId": board["member_id"]}, headers=board["h"])
    assert [t["id"] for t in r.json()["data"]] == [a]

    r = client.get(url, params={"status": "TODO", "ownerId": board["owner_id"]}, headers=board["h"])
    assert r.json()["data"] == []

def test_list_filter_validation(client, board):
    url = f"/api/lists/{board['list_id']}/tasks"
    assert client.get(url, params={"status": "LATER"}, headers=board["h"]).status_code == 422
    assert client.get(url, params={"ownerId": "nope"}, headers=board["h"]).status_code == 422
