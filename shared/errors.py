"""
Failure taxonomy shared by every service.

Domain code raises a DomainError subclass inside a transaction so the
transaction rolls back; the service boundary converts it into an
Outcome carrying a Failure. Routers never see exceptions for business
outcomes, only Outcome objects they must inspect.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, List, Optional, TypeVar

from fastapi import FastAPI, Request, status
from fastapi.exception_handlers import http_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

T = TypeVar("T")


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    BUSINESS_RULE = "business_rule"
    UNAUTHENTICATED = "unauthenticated"
    AUTHORIZATION = "authorization"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INTERNAL = "internal"


_HTTP_STATUS = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.BUSINESS_RULE: status.HTTP_400_BAD_REQUEST,
    ErrorKind.UNAUTHENTICATED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.AUTHORIZATION: status.HTTP_403_FORBIDDEN,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def http_status_for(kind: ErrorKind) -> int:
    return _HTTP_STATUS[kind]


@dataclass(frozen=True)
class Failure:
    kind: ErrorKind
    code: str
    message: str
    details: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


@dataclass
class Outcome(Generic[T]):
    """Result of a service operation plus the side effects to run after commit."""

    value: Optional[T] = None
    failure: Optional[Failure] = None
    events: List[Any] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.failure is None

    @classmethod
    def success(cls, value: T, events: Optional[list] = None) -> "Outcome[T]":
        return cls(value=value, events=list(events or []))

    @classmethod
    def fail(cls, failure: Failure) -> "Outcome[T]":
        return cls(failure=failure)


def failure_response(failure: Failure, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(
        status_code=http_status_for(failure.kind),
        content={"success": False, "error": failure.to_dict()},
        headers=headers,
    )


# --- Domain exceptions (raised inside transactions, converted at the boundary) ---

class DomainError(Exception):
    kind = ErrorKind.INTERNAL
    code = "internal"

    def __init__(self, message: str, code: Optional[str] = None, **details):
        super().__init__(message)
        self.message = message
        self.details = details
        if code:
            self.code = code

    @property
    def failure(self) -> Failure:
        return Failure(self.kind, self.code, self.message, dict(self.details))


class ValidationError(DomainError):
    kind = ErrorKind.VALIDATION
    code = "invalid_input"


class BusinessRuleViolation(DomainError):
    kind = ErrorKind.BUSINESS_RULE
    code = "business_rule"


class CartEmpty(BusinessRuleViolation):
    code = "cart_empty"

    def __init__(self, message: str = "Cart is empty", **details):
        super().__init__(message, None, **details)


class InsufficientStock(BusinessRuleViolation):
    code = "insufficient_stock"


class CouponRejected(BusinessRuleViolation):
    code = "coupon_invalid"


class NotCancellable(BusinessRuleViolation):
    code = "not_cancellable"


class InvalidTransition(BusinessRuleViolation):
    code = "invalid_transition"


class Unauthenticated(DomainError):
    kind = ErrorKind.UNAUTHENTICATED
    code = "unauthenticated"


class Forbidden(DomainError):
    kind = ErrorKind.AUTHORIZATION
    code = "forbidden"


class NotFound(DomainError):
    kind = ErrorKind.NOT_FOUND
    code = "not_found"


class Conflict(DomainError):
    kind = ErrorKind.CONFLICT
    code = "conflict"


def internal_failure(message: str = "Unexpected storage failure") -> Failure:
    return Failure(ErrorKind.INTERNAL, "internal", message)


# --- HTTP boundary: every mounted app renders failures the same way ---

# Statuses raised as plain HTTPException by routers and FastAPI itself
_KIND_FOR_HTTP_STATUS = {
    status.HTTP_400_BAD_REQUEST: ErrorKind.VALIDATION,
    status.HTTP_401_UNAUTHORIZED: ErrorKind.UNAUTHENTICATED,
    status.HTTP_403_FORBIDDEN: ErrorKind.AUTHORIZATION,
    status.HTTP_404_NOT_FOUND: ErrorKind.NOT_FOUND,
    status.HTTP_409_CONFLICT: ErrorKind.CONFLICT,
}

_REQUEST_PARTS = ("body", "query", "path", "header", "cookie")


def _field_errors(exc: RequestValidationError) -> List[dict]:
    fields = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part not in _REQUEST_PARTS]
        fields.append({"field": ".".join(loc) or None, "message": error.get("msg", ""), "type": error.get("type", "")})
    return fields


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = _field_errors(exc)
    first = fields[0] if fields else {"field": None, "message": "Invalid request"}
    message = f"{first['field']}: {first['message']}" if first["field"] else first["message"]
    return failure_response(
        Failure(ErrorKind.VALIDATION, "invalid_input", message, {"field": first["field"], "errors": fields})
    )


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if exc.kind == ErrorKind.UNAUTHENTICATED else None
    return failure_response(exc.failure, headers=headers)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    kind = _KIND_FOR_HTTP_STATUS.get(exc.status_code)
    if kind is None:
        return await http_exception_handler(request, exc)
    return failure_response(Failure(kind, kind.value, str(exc.detail)), headers=getattr(exc, "headers", None))


def register_error_handlers(app: FastAPI) -> None:
    """Installs the failure envelope on an app. Mounted apps need their own call."""
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(DomainError, domain_error_handler)
