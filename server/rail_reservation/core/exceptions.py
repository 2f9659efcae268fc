"""Custom exceptions following RFC 9457 Problem Details for HTTP APIs."""

import logging
import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..schemas.common import Problem, Violation

logger = logging.getLogger(__name__)


class ProblemDetailsException(HTTPException):
    """
    Base exception class following RFC 9457 Problem Details for HTTP APIs.

    https://tools.ietf.org/rfc/rfc9457.txt
    """

    def __init__(
        self,
        status_code: int,
        title: str,
        detail: Optional[str] = None,
        type_uri: Optional[str] = None,
        instance: Optional[str] = None,
        extensions: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        """
        Initialize Problem Details exception.

        Args:
            status_code: HTTP status code
            title: Short, human-readable summary of the problem type
            detail: Human-readable explanation specific to this occurrence
            type_uri: URI reference that identifies the problem type
            instance: URI reference that identifies the specific occurrence
            extensions: Additional problem-specific information
            headers: HTTP headers to include in response
        """
        self.status_code = status_code
        self.title = title
        self.detail = detail
        self.type_uri = type_uri or f"about:blank#{status_code}"
        self.instance = instance
        self.extensions = extensions or {}

        self.problem_details = {
            "type": self.type_uri,
            "title": self.title,
            "status": self.status_code,
        }

        if self.detail:
            self.problem_details["detail"] = self.detail

        if self.instance:
            self.problem_details["instance"] = self.instance

        self.problem_details.update(self.extensions)

        super().__init__(
            status_code=status_code,
            detail=self.problem_details,
            headers=headers
        )

    @property
    def code(self) -> Optional[str]:
        """Application-specific error code, if any."""
        return self.problem_details.get("code")


class ValidationError(ProblemDetailsException):
    """Malformed passenger or travel data, rejected before any seat is touched."""

    def __init__(
        self,
        detail: str = "The request data failed validation",
        errors: Optional[Dict[str, Any]] = None,
        instance: Optional[str] = None,
    ):
        extensions: Dict[str, Any] = {"code": "VALIDATION_ERROR", "retryable": False}
        if errors:
            extensions["errors"] = errors

        super().__init__(
            status_code=400,
            title="Validation Error",
            detail=detail,
            type_uri="https://example.com/problems/validation-error",
            instance=instance,
            extensions=extensions,
        )


class AuthenticationError(ProblemDetailsException):
    """Exception for authentication errors."""

    def __init__(
        self,
        detail: str = "Authentication credentials are required",
        instance: Optional[str] = None,
    ):
        super().__init__(
            status_code=401,
            title="Authentication Required",
            detail=detail,
            type_uri="https://example.com/problems/authentication-required",
            instance=instance,
            headers={"WWW-Authenticate": "Bearer"},
        )


class AuthorizationError(ProblemDetailsException):
    """Exception for authorization errors."""

    def __init__(
        self,
        detail: str = "Insufficient permissions to access this resource",
        required_permissions: Optional[list] = None,
        instance: Optional[str] = None,
    ):
        extensions = {}
        if required_permissions:
            extensions["required_permissions"] = required_permissions

        super().__init__(
            status_code=403,
            title="Access Forbidden",
            detail=detail,
            type_uri="https://example.com/problems/access-forbidden",
            instance=instance,
            extensions=extensions,
        )


class NotFoundError(ProblemDetailsException):
    """Exception for unknown train or booking ids."""

    def __init__(
        self,
        resource_type: str = "resource",
        resource_id: Optional[str] = None,
        detail: Optional[str] = None,
        instance: Optional[str] = None,
    ):
        if not detail:
            detail = f"The requested {resource_type}"
            if resource_id:
                detail += f" with ID '{resource_id}'"
            detail += " could not be found"

        extensions: Dict[str, Any] = {
            "code": "NOT_FOUND",
            "retryable": False,
            "resource_type": resource_type,
        }
        if resource_id:
            extensions["resource_id"] = resource_id

        super().__init__(
            status_code=404,
            title="Resource Not Found",
            detail=detail,
            type_uri="https://example.com/problems/resource-not-found",
            instance=instance,
            extensions=extensions,
        )


class ConflictError(ProblemDetailsException):
    """Exception for resource conflict errors."""

    def __init__(
        self,
        detail: str = "The request conflicts with the current state of the resource",
        conflicting_resource: Optional[Dict[str, Any]] = None,
        instance: Optional[str] = None,
    ):
        extensions: Dict[str, Any] = {"code": "CONFLICT", "retryable": False}
        if conflicting_resource:
            extensions["conflicting_resource"] = conflicting_resource

        super().__init__(
            status_code=409,
            title="Resource Conflict",
            detail=detail,
            type_uri="https://example.com/problems/resource-conflict",
            instance=instance,
            extensions=extensions,
        )


# Reservation core exceptions

class InsufficientCapacityError(ProblemDetailsException):
    """Requested seats exceed the seats still available on a train."""

    def __init__(
        self,
        train_id: str,
        requested_seats: int,
        available_seats: int,
        instance: Optional[str] = None,
    ):
        self.train_id = train_id
        self.requested_seats = requested_seats
        self.available_seats = available_seats

        super().__init__(
            status_code=409,
            title="Insufficient Capacity",
            detail=(
                f"Train {train_id} has insufficient capacity. "
                f"Requested: {requested_seats}, Available: {available_seats}"
            ),
            type_uri="https://example.com/problems/insufficient-capacity",
            instance=instance,
            extensions={
                "code": "INSUFFICIENT_CAPACITY",
                "retryable": False,
                "train_id": train_id,
                "requested_seats": requested_seats,
                "available_seats": available_seats,
            },
        )


class InvalidTransitionError(ProblemDetailsException):
    """A booking lifecycle operation is not allowed from the booking's current status."""

    def __init__(
        self,
        booking_id: str,
        current_status: str,
        operation: str,
        detail: Optional[str] = None,
        instance: Optional[str] = None,
    ):
        self.booking_id = booking_id
        self.current_status = current_status
        self.operation = operation

        if not detail:
            detail = f"Cannot {operation} booking {booking_id} in status '{current_status}'"

        super().__init__(
            status_code=409,
            title="Invalid Booking Transition",
            detail=detail,
            type_uri="https://example.com/problems/invalid-transition",
            instance=instance,
            extensions={
                "code": "INVALID_TRANSITION",
                "retryable": False,
                "booking_id": booking_id,
                "current_status": current_status,
                "operation": operation,
            },
        )


class CapacityOverflowError(ProblemDetailsException):
    """
    Releasing seats would push available seats above the train's total.

    This is an integrity violation (a seat released twice), never a user error.
    """

    def __init__(
        self,
        train_id: str,
        released_seats: int,
        available_seats: int,
        total_seats: int,
        instance: Optional[str] = None,
    ):
        self.train_id = train_id
        self.released_seats = released_seats
        self.available_seats = available_seats
        self.total_seats = total_seats

        super().__init__(
            status_code=500,
            title="Capacity Overflow",
            detail=(
                f"Releasing {released_seats} seat(s) on train {train_id} would exceed "
                f"total capacity ({available_seats}/{total_seats} available)"
            ),
            type_uri="https://example.com/problems/capacity-overflow",
            instance=instance,
            extensions={
                "code": "CAPACITY_OVERFLOW",
                "retryable": False,
                "train_id": train_id,
                "released_seats": released_seats,
                "available_seats": available_seats,
                "total_seats": total_seats,
            },
        )


async def problem_details_handler(request: Request, exc: ProblemDetailsException) -> JSONResponse:
    """
    Exception handler for Problem Details exceptions.

    Args:
        request: FastAPI request object
        exc: Problem Details exception

    Returns:
        JSONResponse: Problem Details formatted response
    """
    content = dict(exc.problem_details)
    content.setdefault("instance", request.url.path)
    return JSONResponse(
        status_code=exc.status_code,
        content=content,
        headers=exc.headers,
        media_type="application/problem+json",
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render request body validation failures as Problem Details with violations."""
    problem = Problem(
        type="https://example.com/problems/validation-error",
        title="Validation Error",
        status=422,
        detail="The request data failed validation",
        instance=request.url.path,
        code="VALIDATION_ERROR",
        retryable=False,
        violations=[
            Violation(
                path=".".join(str(part) for part in error.get("loc", ())),
                message=error.get("msg", "Invalid value"),
            )
            for error in exc.errors()
        ],
    )

    return JSONResponse(
        status_code=422,
        content=problem.model_dump(exclude_none=True),
        media_type="application/problem+json",
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Generic exception handler that converts unhandled exceptions to Problem Details format.

    Args:
        request: FastAPI request object
        exc: Unhandled exception

    Returns:
        JSONResponse: Problem Details formatted response
    """
    error_id = str(uuid.uuid4())

    logger.error(
        "Unhandled exception",
        extra={"error_id": error_id, "path": request.url.path, "error": str(exc)},
        exc_info=exc,
    )

    problem_details = {
        "type": "https://example.com/problems/internal-server-error",
        "title": "Internal Server Error",
        "status": 500,
        "detail": "An unexpected error occurred while processing the request",
        "instance": str(request.url),
        "error_id": error_id,
        "timestamp": datetime.utcnow().isoformat() + "Z",
    }

    return JSONResponse(
        status_code=500,
        content=problem_details,
        media_type="application/problem+json",
    )
