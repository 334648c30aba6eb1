"""
Custom Exception Classes for the Hotel Booking Chat Agent.

This module defines exception classes for the failure categories the dialog
cares about:
- Collaborator errors (database, catalog, booking ledger)
- Delivery errors (outbound messages)
- Payment errors (initiating or resolving a payment)
- Configuration errors

User input mistakes (bad dates, out-of-range selections) are not exceptions;
the dialog re-prompts for those in place.
"""

from typing import Optional, Any, Dict


class BookingSystemError(Exception):
    """Base exception for all booking system errors."""

    def __init__(
        self,
        message: str,
        user_message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        recoverable: bool = True
    ):
        """
        Initialize booking system error.

        Args:
            message: Technical error message for logging
            user_message: User-friendly message for the chat reply
            context: Additional context for error recovery
            recoverable: Whether the error is recoverable
        """
        super().__init__(message)
        self.message = message
        self.user_message = user_message or message
        self.context = context or {}
        self.recoverable = recoverable


# ============================================================================
# Database Errors
# ============================================================================

class DatabaseError(BookingSystemError):
    """
    Raised when a persistence operation fails.

    Examples:
    - Connection failures
    - Query errors
    - Constraint violations
    """

    def __init__(
        self,
        message: str,
        operation: str = "unknown",
        original_error: Optional[Exception] = None,
        can_retry: bool = True,
        **kwargs
    ):
        """
        Initialize database error.

        Args:
            message: Error message
            operation: Database operation that failed (get, update, create...)
            original_error: Original exception
            can_retry: Whether retry is possible
            **kwargs: Additional context
        """
        user_message = kwargs.pop("user_message", None)
        context = {
            "operation": operation,
            "original_error": str(original_error) if original_error else None,
            "can_retry": can_retry,
            **kwargs
        }
        super().__init__(
            message,
            user_message=user_message,
            context=context,
            recoverable=can_retry
        )
        self.operation = operation
        self.original_error = original_error
        self.can_retry = can_retry


class DatabaseConnectionError(DatabaseError):
    """Raised when the database cannot be reached."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("operation", "connection")
        super().__init__(message, **kwargs)


class DatabaseQueryError(DatabaseError):
    """Raised when a query or write fails."""

    def __init__(self, message: str, query_type: str = "unknown", **kwargs):
        super().__init__(message, query_type=query_type, **kwargs)
        self.query_type = query_type


class CatalogError(DatabaseError):
    """Raised when the hotel catalog cannot be searched."""

    def __init__(self, message: str, search_type: str = "unknown", **kwargs):
        kwargs.setdefault("operation", f"catalog_{search_type}")
        super().__init__(message, **kwargs)
        self.search_type = search_type


class BookingNotFoundError(DatabaseError):
    """Raised when a booking id does not exist in the ledger."""

    def __init__(self, booking_id: int, **kwargs):
        super().__init__(
            f"Booking {booking_id} not found",
            operation="get_booking",
            can_retry=False,
            booking_id=booking_id,
            **kwargs
        )
        self.booking_id = booking_id


# ============================================================================
# Notification Errors
# ============================================================================

class NotificationError(BookingSystemError):
    """
    Raised when an outbound message cannot be delivered.

    Delivery failures never block the dialog; they are logged by the notifier.
    """

    def __init__(
        self,
        message: str,
        channel: str = "whatsapp",
        recipient: Optional[str] = None,
        original_error: Optional[Exception] = None,
        **kwargs
    ):
        context = {
            "channel": channel,
            "recipient": recipient,
            "original_error": str(original_error) if original_error else None,
            **kwargs
        }
        super().__init__(message, context=context, recoverable=True)
        self.channel = channel
        self.recipient = recipient
        self.original_error = original_error


class MessageDeliveryError(NotificationError):
    """Raised when the messaging provider rejects or drops a message."""

    def __init__(self, message: str, error_code: Optional[str] = None, **kwargs):
        super().__init__(message, error_code=error_code, **kwargs)
        self.error_code = error_code


# ============================================================================
# Payment Errors
# ============================================================================

class PaymentError(BookingSystemError):
    """Base class for payment gateway failures."""

    def __init__(
        self,
        message: str,
        booking_id: Optional[int] = None,
        phone_number: Optional[str] = None,
        original_error: Optional[Exception] = None,
        **kwargs
    ):
        context = {
            "booking_id": booking_id,
            "phone_number": phone_number,
            "original_error": str(original_error) if original_error else None,
            **kwargs
        }
        super().__init__(message, context=context, recoverable=True)
        self.booking_id = booking_id
        self.phone_number = phone_number
        self.original_error = original_error


class PaymentInitiationError(PaymentError):
    """Raised when a payment request cannot be started."""
    pass


# ============================================================================
# Configuration Errors
# ============================================================================

class ConfigurationError(BookingSystemError):
    """
    Raised when system configuration is invalid.

    Examples:
    - Missing database URL
    - Partial messaging credentials
    """

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        **kwargs
    ):
        context = {
            "config_key": config_key,
            **kwargs
        }
        super().__init__(
            message,
            user_message="The booking service is not configured correctly. Please try again later.",
            context=context,
            recoverable=False
        )
        self.config_key = config_key
