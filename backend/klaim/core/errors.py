import enum
import structlog
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

logger = structlog.get_logger(__name__)


class ErrorKind(str, enum.Enum):
    validation = "validation"
    unauthorized = "unauthorized"
    not_found = "not_found"
    conflict = "conflict"
    internal = "internal"


STATUS_BY_KIND = {
    ErrorKind.validation: 422,
    ErrorKind.unauthorized: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.not_found: status.HTTP_404_NOT_FOUND,
    ErrorKind.conflict: status.HTTP_409_CONFLICT,
    ErrorKind.internal: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


class KlaimError(Exception):
    """Service-layer failure; the kind is fixed where it is raised."""

    def __init__(self, kind: ErrorKind, detail: str):
        super().__init__(detail)
        self.kind = kind
        self.detail = detail

    @property
    def status_code(self) -> int:
        return STATUS_BY_KIND[self.kind]


def unauthorized(detail: str) -> KlaimError:
    return KlaimError(ErrorKind.unauthorized, detail)


def not_found(detail: str) -> KlaimError:
    return KlaimError(ErrorKind.not_found, detail)


def conflict(detail: str) -> KlaimError:
    return KlaimError(ErrorKind.conflict, detail)


async def klaim_error_handler(request: Request, exc: KlaimError) -> JSONResponse:
    if exc.kind is ErrorKind.internal:
        logger.error("request_failed", path=request.url.path, detail=exc.detail)
        detail = "Internal server error"
    else:
        detail = exc.detail
    headers = {"WWW-Authenticate": "Bearer"} if exc.kind is ErrorKind.unauthorized else None
    return JSONResponse({"detail": detail}, status_code=exc.status_code, headers=headers)


async def storage_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("storage_error", path=request.url.path, error_type=type(exc).__name__)
    return JSONResponse(
        {"detail": "Internal server error"},
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(KlaimError, klaim_error_handler)
    app.add_exception_handler(SQLAlchemyError, storage_error_handler)
