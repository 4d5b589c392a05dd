from typing import Any

class AppError(Exception):
    status_code = 500
    message = "Internal Server Error"

    def __init__(self, message: str | None = None, errors: Any = None):
        super().__init__(message or self.message)
        if message is not None:
            self.message = message
        self.errors = errors

class ValidationFailed(AppError):
    status_code = 400
    message = "Invalid payload"

    def __init__(self, message: str | None = None, errors: Any = None, status_code: int = 400):
        super().__init__(message, errors)
        self.status_code = status_code

class InvalidCredentials(AppError):
    status_code = 401
    message = "Invalid credentials"

class InvalidOtp(AppError):
    status_code = 401
    message = "Invalid OTP"

class Unauthorized(AppError):
    status_code = 401
    message = "Unauthorized"

class Forbidden(AppError):
    status_code = 403
    message = "Forbidden"

class NotFound(AppError):
    status_code = 404
    message = "Not found"

class Conflict(AppError):
    status_code = 409
    message = "Conflict"

class Gone(AppError):
    status_code = 410
    message = "Gone"

class RateLimited(AppError):
    status_code = 429
    message = "Too many requests"

def error_details(errors: list[dict]) -> list[dict]:
    # pydantic error dicts may carry exception objects in ctx
    return [
        {"loc": list(e.get("loc", ())), "msg": e.get("msg", ""), "type": e.get("type", "")}
        for e in errors
    ]
