"""
Request identity, validation errors and error formatting for the API.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from ariadne import format_error, unwrap_graphql_error
from django.http import JsonResponse
from graphql import GraphQLError

from shop.domain.errors import ShopError

logger = logging.getLogger(__name__)

ROLES = ("customer", "admin")


class ValidationError(Exception):
    """Custom validation error."""
    def __init__(self, message: str, code: str = "VALIDATION_ERROR"):
        self.message = message
        self.code = code
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "category": "precondition", "retryable": False}


class AuthorizationError(ValidationError):
    """Caller identity missing or lacking the required role."""
    def __init__(self, message: str, code: str = "FORBIDDEN"):
        super().__init__(message, code)


@dataclass(frozen=True)
class Caller:
    """Identity resolved upstream by the gateway."""
    id: int
    role: str


def resolve_caller(request) -> Caller | None:
    """Read ``X-User-ID`` / ``X-User-Role``; no headers means anonymous."""
    user_id = request.headers.get("X-User-ID")
    if not user_id:
        return None

    try:
        caller_id = int(user_id)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid X-User-ID header: {user_id!r}")
    if caller_id < 1:
        raise ValidationError(f"Invalid X-User-ID header: {user_id!r}")

    role = (request.headers.get("X-User-Role") or "customer").lower()
    if role not in ROLES:
        raise ValidationError(f"Invalid X-User-Role header: {role!r}")
    return Caller(id=caller_id, role=role)


def require_role(info, role: str) -> Caller:
    """Return the caller if it holds ``role``; reject before any service runs."""
    caller = info.context.get("caller")
    if caller is None:
        raise AuthorizationError("Authentication required", code="UNAUTHENTICATED")
    if caller.role != role:
        raise AuthorizationError(f"{role.capitalize()} access required")
    return caller


def format_graphql_error(error: GraphQLError, debug: bool = False) -> dict:
    """Attach structured error details as GraphQL ``extensions``."""
    original = unwrap_graphql_error(error)

    if isinstance(original, (ShopError, ValidationError)):
        formatted = format_error(error, debug)
        formatted["message"] = original.message
        formatted["extensions"] = original.to_dict()
        return formatted

    if original is None or isinstance(original, GraphQLError):
        # Query syntax or schema validation problem
        formatted = format_error(error, debug)
        formatted.setdefault("extensions", {})["code"] = "GRAPHQL_VALIDATION_FAILED"
        return formatted

    logger.error(
        "unexpected_error",
        extra={"error": f"{type(original).__name__}: {original}"},
        exc_info=(type(original), original, original.__traceback__),
    )
    formatted = format_error(error, debug)
    formatted["message"] = "An internal error occurred"
    formatted["extensions"] = {
        "code": "INTERNAL_ERROR",
        "message": "An internal error occurred",
        "category": "transient",
        "retryable": True,
    }
    return formatted


class ErrorHandler:
    """Error handler for API responses."""

    ERROR_CODES = {
        "VALIDATION_ERROR": 400,
        "UNAUTHENTICATED": 401,
        "FORBIDDEN": 403,
        "DUPLICATE_REQUEST": 409,
        "REQUEST_IN_PROGRESS": 409,
        "INTERNAL_ERROR": 500,
    }

    @classmethod
    def handle_error(cls, error: Exception) -> JsonResponse:
        """Handle error and return JSON response."""
        if isinstance(error, ValidationError):
            status_code = cls.ERROR_CODES.get(error.code, 400)
            return JsonResponse({"error": error.to_dict()}, status=status_code)

        # Log unexpected errors
        logger.error(
            "unexpected_error",
            extra={"error": f"{type(error).__name__}: {error}"},
            exc_info=True,
        )

        return JsonResponse(
            {
                "error": {
                    "code": "INTERNAL_ERROR",
                    "message": "An internal error occurred",
                }
            },
            status=500,
        )

    @classmethod
    def duplicate_request(cls) -> JsonResponse:
        return JsonResponse(
            {
                "error": {
                    "code": "DUPLICATE_REQUEST",
                    "message": "Idempotency key already used with different request",
                }
            },
            status=cls.ERROR_CODES["DUPLICATE_REQUEST"],
        )

    @classmethod
    def request_in_progress(cls) -> JsonResponse:
        return JsonResponse(
            {
                "error": {
                    "code": "REQUEST_IN_PROGRESS",
                    "message": "A request with this idempotency key is still being processed",
                    "retryable": True,
                }
            },
            status=cls.ERROR_CODES["REQUEST_IN_PROGRESS"],
        )
