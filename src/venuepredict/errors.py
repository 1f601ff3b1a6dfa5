"""Error taxonomy shared by the engines, the API and the CLI."""

from __future__ import annotations


class GameError(Exception):
    """Base error. `code` is machine-readable, `status_code` is the HTTP mapping."""

    code = "error"
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidInputError(GameError):
    code = "invalid_input"
    status_code = 400


class RateLimitError(GameError):
    code = "rate_limited"
    status_code = 429

    def __init__(self, message: str, retry_after_seconds: int = 0) -> None:
        super().__init__(message)
        self.retry_after_seconds = max(0, int(retry_after_seconds))


class DuplicatePickError(GameError):
    code = "duplicate_pick"
    status_code = 409


class NotFoundError(GameError):
    code = "not_found"
    status_code = 404


class UpstreamError(GameError):
    """Market source failure. Carries the upstream HTTP status when there was one."""

    code = "upstream_error"
    status_code = 502

    def __init__(self, message: str, upstream_status: int | None = None) -> None:
        super().__init__(message)
        self.upstream_status = upstream_status


class ProcedureNotFoundError(GameError):
    """Stored procedure is not deployed. Signature codes mirror PostgREST / Postgres."""

    code = "procedure_not_found"
    status_code = 500
    SIGNATURES = ("PGRST202", "42883")

    def __init__(self, name: str, signature: str = "PGRST202") -> None:
        super().__init__(f"Could not find the function {name} in the schema cache.")
        self.name = name
        self.signature = signature


class AuthError(GameError):
    code = "unauthorized"
    status_code = 401

    def __init__(self, message: str, status_code: int = 401) -> None:
        super().__init__(message)
        self.status_code = status_code
        if status_code == 403:
            self.code = "forbidden"
