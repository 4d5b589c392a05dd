"""Client-side session handling for the taskhub API.

The access token lives only in memory on a :class:`Session`; the refresh
token lives in the HTTP client's cookie jar (HTTP-only, scoped to the refresh
path), so a fresh process has to hydrate through ``/api/auth/refresh`` before
it can call anything authenticated.

:class:`ApiClient` attaches the bearer header, and on a 401 performs one
silent refresh followed by exactly one retry of the original request.
Concurrent 401s share a single refresh: a caller that finds the session
already holding a newer token than the one its request carried retries with
that token instead of refreshing again.
"""

import threading
from typing import Any

import httpx
import structlog

log = structlog.get_logger()

REFRESH_PATH = "/api/auth/refresh"
LOGIN_PATH = "/api/auth/login"
SIGNUP_PATH = "/api/auth/signup"
OTP_VERIFY_PATH = "/api/auth/otp/verify"
LOGOUT_PATH = "/api/auth/logout"

class Session:
    """Holds the in-memory access token.

    Lifecycle: create, hydrate via refresh, replace on login or refresh,
    clear on logout. Safe to share between threads.
    """

    def __init__(self, access_token: str | None = None):
        self._lock = threading.Lock()
        self._access_token = access_token

    @property
    def access_token(self) -> str | None:
        with self._lock:
            return self._access_token

    @property
    def is_authenticated(self) -> bool:
        return self.access_token is not None

    def set_access_token(self, token: str | None) -> None:
        with self._lock:
            self._access_token = token

    def clear(self) -> None:
        self.set_access_token(None)

class ApiClient:
    def __init__(
        self,
        base_url: str = "",
        *,
        http: httpx.Client | None = None,
        session: Session | None = None,
        refresh_path: str = REFRESH_PATH,
    ):
        self.http = http if http is not None else httpx.Client(base_url=base_url)
        self._owns_http = http is None
        self.session = session if session is not None else Session()
        self.refresh_path = refresh_path
        self._refresh_lock = threading.Lock()

    def close(self) -> None:
        if self._owns_http:
            self.http.close()

    def __enter__(self) -> "ApiClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def refresh_session(self) -> bool:
        """POST the refresh endpoint with the cookie jar; never raises."""
        try:
            resp = self.http.post(self.refresh_path, headers={"Content-Type": "application/json"})
            if not resp.is_success:
                return False
            token = (resp.json().get("data") or {}).get("accessToken")
        except (httpx.HTTPError, ValueError, AttributeError) as exc:
            log.warning("client.refresh_failed", error=exc.__class__.__name__)
            return False

        if not token:
            return False
        self.session.set_access_token(token)
        return True

    def hydrate(self) -> bool:
        # page-load equivalent: the only way back in is the refresh cookie
        return self.refresh_session()

    def _build_headers(self, headers: Any) -> tuple[httpx.Headers, str | None]:
        merged = httpx.Headers({"Content-Type": "application/json"})
        if headers:
            merged.update(headers)

        sent_token = None
        token = self.session.access_token
        if token and "authorization" not in merged:
            merged["Authorization"] = f"Bearer {token}"
            sent_token = token
        return merged, sent_token

    def request(self, method: str, url: str, *, retry: bool = True, headers: Any = None, **kwargs) -> httpx.Response:
        merged, sent_token = self._build_headers(headers)
        caller_auth = bool(headers) and "authorization" in httpx.Headers(headers)
        resp = self.http.request(method, url, headers=merged, **kwargs)

        if resp.status_code != 401 or not retry:
            return resp

        with self._refresh_lock:
            current = self.session.access_token
            if not caller_auth and current is not None and current != sent_token:
                # another caller refreshed while this request was in flight,
                # or a token arrived after a tokenless request went out
                refreshed = True
            else:
                refreshed = self.refresh_session()

        if not refreshed:
            return resp
        return self.request(method, url, retry=False, headers=headers, **kwargs)

    def get(self, url: str, **kwargs) -> httpx.Response:
        return self.request("GET", url, **kwargs)

    def post(self, url: str, **kwargs) -> httpx.Response:
        return self.request("POST", url, **kwargs)

    def get_json(self, url: str) -> Any:
        return self.get(url).json()

    def post_json(self, url: str, body: Any) -> Any:
        return self.post(url, json=body).json()

    def _store_token(self, body: dict) -> dict:
        if body.get("status") == "ok":
            token = (body.get("data") or {}).get("accessToken")
            if token:
                self.session.set_access_token(token)
        return body

    def login(self, email: str, password: str) -> dict:
        return self._store_token(self.post_json(LOGIN_PATH, {"email": email, "password": password}))

    def signup(self, email: str, password: str) -> dict:
        return self._store_token(self.post_json(SIGNUP_PATH, {"email": email, "password": password}))

    def verify_otp(self, email: str, otp: str) -> dict:
        return self._store_token(self.post_json(OTP_VERIFY_PATH, {"email": email, "otp": otp}))

    def logout(self) -> None:
        try:
            self.post(LOGOUT_PATH, retry=False)
        finally:
            self.session.clear()
