"""
Centralized error handling utilities for the booking system.

This module provides:
- A tenacity retry policy for transient database failures
- Translation of SQLAlchemy errors into the booking error hierarchy
- Logging helpers that attach phone/booking context for reconciliation
"""
import functools
from typing import Callable, Optional, Dict, Any

from loguru import logger
from sqlalchemy.exc import OperationalError, DisconnectionError, SQLAlchemyError
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)

from .exceptions import (
    BookingSystemError,
    DatabaseConnectionError,
    DatabaseQueryError,
)
from .error_messages import get_error_message


def _log_retry(retry_state) -> None:
    logger.warning(
        f"Database operation {retry_state.fn.__name__} failed "
        f"(attempt {retry_state.attempt_number}): {retry_state.outcome.exception()}. Retrying..."
    )


def retry_on_db_error(max_attempts: int = 3, min_wait: float = 0.2, max_wait: float = 2.0):
    """
    Decorator that retries transient SQLAlchemy connection errors.

    After the last attempt the error propagates unchanged so that
    ``translate_db_errors`` can turn it into a DatabaseConnectionError.

    Args:
        max_attempts: Total number of attempts
        min_wait: Minimum backoff in seconds
        max_wait: Maximum backoff in seconds
    """
    return retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=min_wait, min=min_wait, max=max_wait),
        retry=retry_if_exception_type((OperationalError, DisconnectionError)),
        before_sleep=_log_retry,
        reraise=True,
    )


def translate_db_errors(operation: str, error_class: type = DatabaseQueryError):
    """
    Decorator converting SQLAlchemy exceptions into booking system errors.

    Args:
        operation: Name of the operation for logging and error context
        error_class: DatabaseError subclass raised for query failures
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except BookingSystemError:
                raise
            except (OperationalError, DisconnectionError) as e:
                logger.error(f"Database connection failed during {operation}: {e}")
                raise DatabaseConnectionError(
                    f"Database connection failed during {operation}",
                    operation=operation,
                    original_error=e,
                    can_retry=False,
                ) from e
            except SQLAlchemyError as e:
                logger.error(f"Database error during {operation}: {e}")
                raise error_class(
                    f"Database error during {operation}: {e}",
                    operation=operation,
                    original_error=e,
                ) from e

        return wrapper
    return decorator


def handle_collaborator_error(
    error: BookingSystemError,
    phone_number: str,
    state: Optional[str] = None,
) -> str:
    """
    Log a collaborator failure and return the apology to send.

    Args:
        error: Error raised by a store, catalog, ledger or gateway
        phone_number: Conversation the error happened in
        state: Conversation state at the time of failure

    Returns:
        User-facing message
    """
    logger.bind(phone=phone_number, state=state).error(
        f"{type(error).__name__} while handling message | "
        f"phone={phone_number} | state={state} | "
        f"error={error.message} | context={error.context}"
    )
    return get_error_message(error)


def log_reconciliation_failure(
    step: str,
    error: Exception,
    phone_number: str,
    booking_id: int,
    extra: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Log a payment continuation step that failed, with enough context to fix it by hand.

    Args:
        step: Step that failed ("record_status", "notify", "advance_conversation")
        error: Exception raised
        phone_number: Customer phone number
        booking_id: Booking the payment belongs to
        extra: Additional context (status, transaction reference...)
    """
    extra = extra or {}
    logger.bind(
        category="BOOKING",
        phone=phone_number,
        booking_id=booking_id,
    ).opt(exception=error).error(
        f"RECONCILE payment step '{step}' failed | "
        f"phone={phone_number} | booking_id={booking_id} | "
        f"error={type(error).__name__}: {error} | details={extra}"
    )
