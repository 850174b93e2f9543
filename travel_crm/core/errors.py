"""
Application error taxonomy

Domain code raises these; the exception handlers in main.py turn them into
the standard ``{success, message, code}`` envelope.
"""

from typing import Any, Dict, Optional

from fastapi import status


class AppError(Exception):
    """Base application error carrying an HTTP status"""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "APP_ERROR"
    message: str = "Application error"

    def __init__(
        self,
        message: Optional[str] = None,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message or self.message
        self.code = code or self.code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        body = {"success": False, "message": self.message, "code": self.code}
        if self.details:
            body["details"] = self.details
        return body


# Categories

class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"
    message = "Resource not found"


class UnauthorizedError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "UNAUTHORIZED"
    message = "Authentication required"


class ForbiddenError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"
    message = "You do not have permission to perform this action"


class InvalidStateError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "INVALID_STATE"
    message = "Operation not allowed in the current state"


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "VALIDATION_ERROR"
    message = "Invalid request"


class ExternalServiceError(AppError):
    status_code = status.HTTP_502_BAD_GATEWAY
    code = "EXTERNAL_SERVICE_ERROR"
    message = "External service failed"


# Tenant resolution

class TenantNotFound(NotFoundError):
    code = "TENANT_NOT_FOUND"
    message = "Tenant not found. Please check your URL or contact support."


class TenantInactive(ForbiddenError):
    code = "TENANT_INACTIVE"
    message = "Your account is currently inactive. Please contact support."


class SubscriptionSuspended(ForbiddenError):
    code = "SUBSCRIPTION_SUSPENDED"
    message = "Your subscription is suspended. Please update your billing information."


class TrialExpired(ForbiddenError):
    code = "TRIAL_EXPIRED"
    message = "Your trial period has ended. Please choose a plan to continue."


class UsageLimitExceeded(ForbiddenError):
    code = "USAGE_LIMIT_EXCEEDED"
    message = "Your plan limit has been reached"


# Authentication

class InvalidCredential(UnauthorizedError):
    code = "INVALID_CREDENTIAL"
    message = "Invalid or expired token."


class CredentialRevoked(UnauthorizedError):
    code = "CREDENTIAL_REVOKED"
    message = "Token has been invalidated. Please login again."


class StaleCredential(UnauthorizedError):
    code = "STALE_CREDENTIAL"
    message = "Password recently changed. Please login again."


class UserNotFound(UnauthorizedError):
    code = "USER_NOT_FOUND"
    message = "User no longer exists."


class CrossTenantAccess(ForbiddenError):
    code = "CROSS_TENANT_ACCESS"
    message = "Access denied. User does not belong to this tenant."


class AccountDeactivated(ForbiddenError):
    code = "ACCOUNT_DEACTIVATED"
    message = "Your account has been deactivated."


# Authorization

class ProfileNotFound(NotFoundError):
    code = "PROFILE_NOT_FOUND"
    message = "Profile not found. Please contact administrator."


# Quotes

class ImmutableQuote(InvalidStateError):
    code = "IMMUTABLE_QUOTE"
    message = "Quote can no longer be modified"


class QuoteExpired(InvalidStateError):
    code = "QUOTE_EXPIRED"
    message = "This quote has expired"
