"""
Error handling module for the hotel booking chat agent.

Main Components:
    - exceptions: Custom exception classes for collaborator, delivery and payment failures
    - error_messages: User-facing chat replies for those failures
    - handlers: Retry policy, SQLAlchemy error translation and contextual logging
    - logging_config: loguru sinks and audit-trail helpers
"""

from .exceptions import (
    BookingSystemError,
    DatabaseError,
    DatabaseConnectionError,
    DatabaseQueryError,
    CatalogError,
    BookingNotFoundError,
    NotificationError,
    MessageDeliveryError,
    PaymentError,
    PaymentInitiationError,
    ConfigurationError,
)

from .error_messages import (
    GENERIC_APOLOGY,
    get_error_message,
)

from .handlers import (
    retry_on_db_error,
    translate_db_errors,
    handle_collaborator_error,
    log_reconciliation_failure,
)

from .logging_config import (
    configure_logging,
    log_booking_event,
    log_conversation_event,
)

__all__ = [
    # Exceptions
    "BookingSystemError",
    "DatabaseError",
    "DatabaseConnectionError",
    "DatabaseQueryError",
    "CatalogError",
    "BookingNotFoundError",
    "NotificationError",
    "MessageDeliveryError",
    "PaymentError",
    "PaymentInitiationError",
    "ConfigurationError",

    # Error Messages
    "GENERIC_APOLOGY",
    "get_error_message",

    # Error Handlers
    "retry_on_db_error",
    "translate_db_errors",
    "handle_collaborator_error",
    "log_reconciliation_failure",

    # Logging
    "configure_logging",
    "log_booking_event",
    "log_conversation_event",
]
