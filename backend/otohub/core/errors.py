# backend/otohub/core/errors.py
"""
Structured error classes for tenant isolation and subscription enforcement.

Every rejection carries a stable machine-readable ``code`` so clients can
branch on it without parsing the message.
"""
from datetime import datetime, timezone
from http import HTTPStatus
from typing import Any, Dict, Optional

from fastapi import status


class OtohubError(Exception):
    """Base exception for every rejection raised by the enforcement core."""

    code: str = "INTERNAL_ERROR"
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self, path: Optional[str] = None, include_details: bool = True) -> dict:
        """Convert to the error response body."""
        body = {
            "statusCode": self.status_code,
            "error": HTTPStatus(self.status_code).phrase,
            "message": self.message,
            "code": self.code,
            "path": path,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        if include_details and self.details:
            body["details"] = self.details
        return body


# Authentication

class AuthenticationRequired(OtohubError):
    code = "AUTHENTICATION_REQUIRED"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Authentication required"


class InvalidToken(OtohubError):
    code = "INVALID_TOKEN"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Could not validate credentials"


# Authorization

class TenantMismatch(OtohubError):
    code = "TENANT_MISMATCH"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Tenant mismatch: the requested tenant does not match your account"


class NoTenantAssociated(OtohubError):
    code = "NO_TENANT_ASSOCIATED"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "No tenant associated with this account"


class InsufficientRole(OtohubError):
    code = "INSUFFICIENT_ROLE"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Your role does not allow this action"


# User state

class EmailNotVerified(OtohubError):
    code = "EMAIL_NOT_VERIFIED"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Please verify your email address before continuing"


class OnboardingRequired(OtohubError):
    code = "ONBOARDING_NOT_COMPLETED"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Please complete onboarding before continuing"


# Subscription gate

class SubscriptionBlocked(OtohubError):
    code = "SUBSCRIPTION_BLOCKED"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Access is blocked for this subscription. Please settle billing to continue"


class ReadOnlyViolation(OtohubError):
    code = "SUBSCRIPTION_READ_ONLY"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Subscription is in read-only mode. Please renew to make changes"


# Plan limits

class LimitReached(OtohubError):
    code = "LIMIT_REACHED"
    status_code = status.HTTP_402_PAYMENT_REQUIRED
    default_message = "Plan limit reached"

    def __init__(self, feature: str, limit: int, current: int):
        super().__init__(
            f"{feature} limit reached ({current}/{limit}). Upgrade your plan to add more",
            details={"feature": feature, "limit": limit, "current": current},
        )
        self.feature = feature
        self.limit = limit
        self.current = current


class FeatureDisabled(OtohubError):
    code = "FEATURE_DISABLED"
    status_code = status.HTTP_402_PAYMENT_REQUIRED
    default_message = "Feature is not available on your plan"

    def __init__(self, feature: str):
        super().__init__(
            f"Feature {feature} is not available on your plan",
            details={"feature": feature},
        )
        self.feature = feature


# State machine

class IllegalTransition(OtohubError):
    code = "ILLEGAL_TRANSITION"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Illegal subscription status transition"

    def __init__(self, from_status: str, to_status: str):
        super().__init__(
            f"Invalid status transition: {from_status} -> {to_status}",
            details={"from": from_status, "to": to_status},
        )
        self.from_status = from_status
        self.to_status = to_status


# Lookup / generic

class TenantNotFound(OtohubError):
    code = "TENANT_NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Tenant not found"


class ResourceNotFound(OtohubError):
    code = "NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class InvalidOperation(OtohubError):
    code = "INVALID_OPERATION"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid operation"


class RateLimited(OtohubError):
    code = "RATE_LIMITED"
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_message = "Too many requests"

    def __init__(self, retry_after: int, limit: int):
        super().__init__(
            "Too many requests, please try again later",
            details={"retry_after": retry_after, "limit": limit},
        )
        self.retry_after = retry_after
        self.limit = limit


class Conflict(OtohubError):
    code = "CONFLICT"
    status_code = status.HTTP_409_CONFLICT
    default_message = "A record with the same unique value already exists"
