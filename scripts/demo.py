from __future__ import annotations

import os
import time

import httpx
from rich import print

from taskhub.client import ApiClient

BASE = os.getenv("API_BASE_URL", "http://127.0.0.1:4000")

def wait_ready(api: ApiClient, timeout_s: float = 30.0) -> None:
    deadline = time.time() + timeout_s
    last_err: Exception | None = None

    while time.time() < deadline:
        try:
            r = api.http.get("/ready")
            if r.status_code == 200:
                return
        except httpx.HTTPError as e:
            last_err = e
        time.sleep(0.5)

    if last_err:
        raise RuntimeError(f"api not ready after {timeout_s}s (last error: {last_err})")
    raise RuntimeError(f"api not ready after {timeout_s}s")

def main() -> None:
    print("[bold]demo: login -> me -> forced refresh -> org -> logout[/bold]")

    with ApiClient(BASE) as api:
        wait_ready(api)
        print("[green]ready ok[/green]")

        body = api.login("demo@example.com", "Demo1234")
        if body.get("status") != "ok":
            raise RuntimeError(f"login failed: {body.get('message')} (run scripts/seed.py first)")
        print("logged in")

        me = api.get_json("/api/users/me")
        print("me:", me["data"]["email"])

        # drop the in-memory token: the next call has to go through the refresh cookie
        api.session.set_access_token("stale-token")
        me = api.get_json("/api/users/me")
        print("after silent refresh:", me["data"]["email"])

        r = api.post("/api/orgs", json={"name": f"demo org {int(time.time())}"})
        r.raise_for_status()
        org_id = r.json()["data"]["id"]
        print("created org:", org_id)

        members = api.get_json(f"/api/orgs/{org_id}/members")
        print("members:", [m["role"] for m in members["data"]])

        api.logout()
        print("logged out; refresh now:", api.refresh_session())

    print("[bold green]demo complete[/bold green]")

if __name__ == "__main__":
    main()
