from collections.abc import Callable

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from taskhub import db, redis_client
from taskhub.config import settings

router = APIRouter(tags=["health"])

def _describe(exc: Exception) -> str:
    msg = str(exc).strip()
    return f"{exc.__class__.__name__}: {msg}" if msg else exc.__class__.__name__

def _probe(check: Callable[[], bool]) -> tuple[bool, str | None]:
    try:
        return bool(check()), None
    except Exception as exc:
        # any failure counts as the dependency being down
        return False, _describe(exc)

@router.get("/health")
def health() -> dict:
    return {"status": "ok"}

@router.get("/ready")
def ready() -> JSONResponse:
    # looked up per call so probes can be swapped at runtime
    probes = {"db": db.db_ping, "redis": redis_client.redis_ping}

    checks: dict[str, bool] = {}
    errors: dict[str, str] = {}
    for name, check in probes.items():
        checks[name], err = _probe(check)
        if err:
            errors[name] = err

    ok = all(checks.values())
    body: dict = {"status": "ok" if ok else "unready", "env": settings.app_env, "checks": checks}
    if errors:
        body["errors"] = errors
    return JSONResponse(status_code=200 if ok else 503, content=body)
