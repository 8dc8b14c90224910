"""Errors raised by the API layer and how they map onto HTTP responses."""

from __future__ import annotations

from enum import Enum
from http import HTTPStatus
from typing import Any


class ErrorKind(Enum):
    """The categories of API error, with their HTTP status and message labels."""

    INTERNAL = (HTTPStatus.INTERNAL_SERVER_ERROR, "Internal server error", "Internal server error")
    DATABASE = (HTTPStatus.INTERNAL_SERVER_ERROR, "Database error", "Database error occurred")
    VALIDATION = (HTTPStatus.UNPROCESSABLE_ENTITY, "Validation error", "Validation error")
    NOT_FOUND = (HTTPStatus.NOT_FOUND, "Not found", "Not found")
    UNAUTHORIZED = (HTTPStatus.UNAUTHORIZED, "Unauthorized", "Unauthorized")
    FORBIDDEN = (HTTPStatus.FORBIDDEN, "Forbidden", "Forbidden")
    BAD_REQUEST = (HTTPStatus.BAD_REQUEST, "Bad request", "Bad request")

    def __init__(self, status: HTTPStatus, label: str, response_label: str) -> None:
        self.status = status
        self.label = label
        self.response_label = response_label


class AppError(Exception):
    """An error that an API handler reports to the client."""

    def __init__(self, kind: ErrorKind, detail: str | BaseException) -> None:
        super().__init__(kind, detail)
        self.kind = kind
        self.detail = detail
        if isinstance(detail, BaseException):
            self.__cause__ = detail

    def __str__(self) -> str:
        return f"{self.kind.label}: {self.detail}"

    @classmethod
    def from_exception(cls, error: BaseException) -> AppError:
        """Categorise an arbitrary exception by the words in its message."""
        if isinstance(error, AppError):
            return error
        if isinstance(error, RepositoryError):
            return app_error_from_repository(error)
        message = str(error).lower()
        if "database" in message:
            return cls(ErrorKind.DATABASE, error)
        if "validation" in message:
            return cls(ErrorKind.VALIDATION, message)
        if "authentication" in message or "unauthorized" in message:
            return cls(ErrorKind.UNAUTHORIZED, message)
        if "not found" in message:
            return cls(ErrorKind.NOT_FOUND, message)
        return cls(ErrorKind.INTERNAL, error)

    def status_code(self) -> int:
        return int(self.kind.status)

    def to_response(self) -> tuple[int, dict[str, Any]]:
        """Return the HTTP status and the JSON body describing this error."""
        status = self.status_code()
        body = {
            "success": False,
            "error": {
                "message": f"{self.kind.response_label}: {self.detail}",
                "code": status,
            },
        }
        return status, body


class RepositoryError(Exception):
    """A failure in the storage layer."""

    def __init__(self, cause: BaseException | str, *, database: bool = False) -> None:
        super().__init__(cause)
        self.cause = cause
        self.database = database
        if isinstance(cause, BaseException):
            self.__cause__ = cause

    def __str__(self) -> str:
        label = "Database error" if self.database else "Other error"
        return f"{label}: {self.cause}"


class BlockNotFoundError(RepositoryError):
    """No block with the requested hash is stored."""

    def __init__(self, block_hash: str) -> None:
        super().__init__(f"Block not found: {block_hash}")
        self.block_hash = block_hash

    def __str__(self) -> str:
        return f"Block not found: {self.block_hash}"


def app_error_from_repository(error: RepositoryError) -> AppError:
    """Map a storage error onto the API error reported for it."""
    if isinstance(error, BlockNotFoundError):
        return AppError(ErrorKind.NOT_FOUND, f"Block not found: {error.block_hash}")
    if error.database:
        return AppError(ErrorKind.DATABASE, error.cause)
    return AppError(ErrorKind.INTERNAL, error.cause)