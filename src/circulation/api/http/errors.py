"""Translation of lending errors into HTTP responses."""

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from loguru import logger
from starlette.responses import JSONResponse

from src.circulation.core.errors import ErrorKind, LendingError
from src.circulation.core.result import Err, Ok, Result

_STATUS_BY_KIND = {
    ErrorKind.INVALID_ARGUMENT: 400,
    ErrorKind.NOT_FOUND: 404,
}
BUSINESS_RULE_STATUS = 409


class LendingRejected(Exception):
    """Raised by route handlers to turn an ``Err`` into an error response."""

    def __init__(self, error: LendingError):
        super().__init__(str(error))
        self.error = error


def status_for(kind: ErrorKind) -> int:
    return _STATUS_BY_KIND.get(kind, BUSINESS_RULE_STATUS)


def unwrap[T](result: Result[T]) -> T:
    if isinstance(result, Err):
        raise LendingRejected(result.error)
    return result.value


def ensure_ok(result: Result) -> None:
    if not isinstance(result, Ok):
        raise LendingRejected(result.error)


def request_id_of(request: Request) -> str:
    return getattr(request.state, "request_id", "-")


def error_response(request: Request, kind: ErrorKind, detail) -> JSONResponse:
    request_id = request_id_of(request)
    return JSONResponse(
        status_code=status_for(kind),
        content={"error": str(kind), "detail": detail, "request_id": request_id},
        headers={"X-Request-ID": request_id},
    )


async def lending_rejected_handler(request: Request, exc: LendingRejected) -> JSONResponse:
    logger.bind(error_kind=str(exc.error.kind)).info("request.rejected: {}", exc.error.message)
    return error_response(request, exc.error.kind, exc.error.message)


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    detail = [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg", "")}
        for error in exc.errors()
    ]
    return error_response(request, ErrorKind.INVALID_ARGUMENT, detail)
