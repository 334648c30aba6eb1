"""
User-facing error messages for the chat dialog.

Messages here never include technical details; the technical side is logged
separately by the handlers.
"""
from loguru import logger

from .exceptions import (
    BookingSystemError,
    CatalogError,
    DatabaseError,
    PaymentError,
    ConfigurationError,
)


GENERIC_APOLOGY = "Sorry, something went wrong on our end. Please try again later."

CATALOG_APOLOGY = (
    "Sorry, I couldn't search our hotels right now. "
    "Please try again in a moment."
)

PAYMENT_START_FAILED = (
    "Sorry, we couldn't start the M-Pesa payment for booking {booking_id}. "
    "Reply *CONFIRM* to try again or *CANCEL* to start over."
)

PAYMENT_CONFIRMATION_FAILED = (
    "There was an issue confirming your payment. "
    "Please contact support with your Booking ID: {booking_id}."
)


def get_error_message(error: Exception) -> str:
    """
    Pick the chat reply for an error raised by a collaborator.

    Args:
        error: Exception that occurred

    Returns:
        Message safe to send to the user
    """
    if isinstance(error, CatalogError):
        return CATALOG_APOLOGY

    if isinstance(error, PaymentError) and error.booking_id is not None:
        return PAYMENT_START_FAILED.format(booking_id=error.booking_id)

    if isinstance(error, (DatabaseError, ConfigurationError)):
        return GENERIC_APOLOGY

    if isinstance(error, BookingSystemError) and error.user_message != error.message:
        return error.user_message

    logger.debug(f"No specific message for {type(error).__name__}, using generic apology")
    return GENERIC_APOLOGY
