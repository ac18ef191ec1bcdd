"""
Typed service errors
Each carries its HTTP status so routers never inspect messages
"""

from typing import Any, Optional
from fastapi import HTTPException


class AppError(HTTPException):
    status_code = 500
    default_detail = "Internal server error"

    def __init__(self, detail: Optional[Any] = None, headers: Optional[dict] = None):
        super().__init__(
            status_code=self.status_code,
            detail=detail if detail is not None else self.default_detail,
            headers=headers,
        )


# ==================== 400 ====================

class BadRequestError(AppError):
    status_code = 400
    default_detail = "Bad request"


class BusinessRuleError(BadRequestError):
    default_detail = "Operation not allowed"


class NotEnrolledError(BusinessRuleError):
    default_detail = "Student is not enrolled in this course"


class AssessmentUnavailableError(BusinessRuleError):
    default_detail = "Assessment is not available"


class MaxAttemptsReachedError(BusinessRuleError):
    default_detail = "Maximum number of attempts reached"


class AttemptNotInProgressError(BusinessRuleError):
    default_detail = "Attempt is not in progress"


class SelfEnrollmentError(BusinessRuleError):
    default_detail = "You cannot enroll in your own course"


class InvalidOrExpiredTokenError(BusinessRuleError):
    default_detail = "Invalid or expired token"


# ==================== 401 / 403 ====================

class UnauthorizedError(AppError):
    status_code = 401
    default_detail = "Unauthorized"


class InvalidCredentialsError(UnauthorizedError):
    default_detail = "Invalid credentials"


class SecurityBreachError(UnauthorizedError):
    default_detail = "Security breach detected. All sessions have been revoked"


class ForbiddenError(UnauthorizedError):
    default_detail = "You do not have access to this resource"


# ==================== 404 ====================

class NotFoundError(AppError):
    status_code = 404
    default_detail = "Resource not found"


# ==================== 409 ====================

class ConflictError(AppError):
    status_code = 409
    default_detail = "Resource already exists"


class DuplicateInstitutionError(ConflictError):
    default_detail = "An institution with a similar name already exists"


class ConcurrentModificationError(ConflictError):
    default_detail = "The resource was modified concurrently, please retry"
