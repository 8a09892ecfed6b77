# backend/app/core/exceptions.py
"""
Domain-specific exceptions for the studio booking engine.

Every booking and cancellation failure carries a stable ``code`` and a
human-readable message so the API layer can surface both unchanged.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status

HTTP_422_UNPROCESSABLE: int = getattr(status, "HTTP_422_UNPROCESSABLE_CONTENT", 422)


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class ValidationException(DomainException):
    """Raised when business validation fails."""

    status_code = status.HTTP_400_BAD_REQUEST


class PaymentRequiredException(DomainException):
    """Raised when the caller holds no entitlement for the action."""

    status_code = status.HTTP_402_PAYMENT_REQUIRED


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictException(DomainException):
    """Raised when there's a conflict with existing data."""

    status_code = status.HTTP_409_CONFLICT


class BusinessRuleException(DomainException):
    """Raised when a business rule is violated."""

    status_code = HTTP_422_UNPROCESSABLE


class UnauthorizedException(DomainException):
    """Raised when user is not authenticated."""

    status_code = status.HTTP_401_UNAUTHORIZED


class ForbiddenException(DomainException):
    """Raised when user lacks permission for an action."""

    status_code = status.HTTP_403_FORBIDDEN


class ServiceException(DomainException):
    """Raised when a service operation fails."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "message": self.message or "An error occurred processing your request",
                "code": self.code,
                "details": self.details if self.details else {},
            },
        )


# Booking engine errors


class NoActiveSubscriptionException(PaymentRequiredException):
    def __init__(self, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message="Payment required to book",
            code="NO_ACTIVE_SUBSCRIPTION",
            details=details,
        )


class SlotNotFoundException(NotFoundException):
    def __init__(self, slot_id: str):
        super().__init__(
            message="This session is no longer available",
            code="SLOT_NOT_FOUND",
            details={"slot_id": slot_id},
        )


class SlotPastException(BusinessRuleException):
    def __init__(self, slot_id: str):
        super().__init__(
            message="This session has already started",
            code="SLOT_PAST",
            details={"slot_id": slot_id},
        )


class AlreadyBookedException(ConflictException):
    def __init__(self, slot_id: str):
        super().__init__(
            message="You already booked this session",
            code="ALREADY_BOOKED",
            details={"slot_id": slot_id},
        )


class QuotaExceededException(BusinessRuleException):
    def __init__(self, week_start: str, sessions_used: int, sessions_limit: int):
        super().__init__(
            message="You have reached your weekly limit",
            code="QUOTA_EXCEEDED",
            details={
                "week_start": week_start,
                "sessions_used": sessions_used,
                "sessions_limit": sessions_limit,
            },
        )


class SlotFullException(ConflictException):
    """Lost the seat race: the conditional reservation touched no row."""

    def __init__(self, slot_id: str):
        super().__init__(
            message="This session is no longer available",
            code="SLOT_FULL_CONCURRENT",
            details={"slot_id": slot_id},
        )


class BookingNotFoundException(NotFoundException):
    def __init__(self, booking_id: str):
        super().__init__(
            message="Booking not found",
            code="NOT_FOUND",
            details={"booking_id": booking_id},
        )


class AlreadyCancelledException(ConflictException):
    def __init__(self, booking_id: str):
        super().__init__(
            message="Booking already cancelled",
            code="ALREADY_CANCELLED",
            details={"booking_id": booking_id},
        )


class InvalidStatusTransitionException(BusinessRuleException):
    def __init__(self, booking_id: str, current: str, requested: str):
        super().__init__(
            message=f"Cannot change booking status from {current} to {requested}",
            code="INVALID_STATUS_TRANSITION",
            details={"booking_id": booking_id, "current": current, "requested": requested},
        )


class VoucherNotFoundException(NotFoundException):
    def __init__(self, code: str):
        super().__init__(
            message="Voucher not found",
            code="NOT_FOUND",
            details={"voucher_code": code},
        )


class VoucherNotActiveException(ConflictException):
    def __init__(self, code: str, current: str):
        super().__init__(
            message="Voucher already redeemed or expired",
            code="VOUCHER_NOT_ACTIVE",
            details={"voucher_code": code, "status": current},
        )


class VoucherExpiredException(BusinessRuleException):
    def __init__(self, code: str, expires_at: str):
        super().__init__(
            message="Voucher has expired",
            code="VOUCHER_EXPIRED",
            details={"voucher_code": code, "expires_at": expires_at},
        )


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations.
    """
