import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from taskhub.config import settings
from taskhub.errors import AppError, error_details
from taskhub.logging import configure_logging
from taskhub.routes.auth import router as auth_router
from taskhub.routes.health import router as health_router
from taskhub.routes.invites import router as invites_router
from taskhub.routes.orgs import router as orgs_router
from taskhub.routes.resources import router as resources_router
from taskhub.routes.users import router as users_router

log = structlog.get_logger()

def _error(status_code: int, message: str, errors=None, headers=None) -> JSONResponse:
    body: dict = {"status": "error", "message": message}
    if errors:
        body["errors"] = errors
    return JSONResponse(status_code=status_code, content=body, headers=headers)

def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def _app_error(request: Request, exc: AppError) -> JSONResponse:
        return _error(exc.status_code, exc.message, exc.errors)

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        if exc.status_code == 404 and message == "Not Found":
            message = "Not found"
        return _error(exc.status_code, message, headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        return _error(422, "Invalid payload", error_details(exc.errors()))

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception) -> JSONResponse:
        # detail stays in the log, never in the response
        log.error("http.unhandled_error", path=request.url.path, method=request.method, exc_info=exc)
        return _error(500, "Internal Server Error")

def create_app() -> FastAPI:
    configure_logging(settings.log_level, settings.log_format)

    app = FastAPI(title="taskhub-api", version="0.1.0")
    register_error_handlers(app)

    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(orgs_router)
    app.include_router(invites_router)
    app.include_router(resources_router)
    return app

app = create_app()
