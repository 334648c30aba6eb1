"""
Centralized logging configuration for the booking system.

This module configures loguru for the console and optional rotating log files,
including a separate audit trail for booking events.
"""
import sys
from pathlib import Path
from typing import Optional
from loguru import logger


def configure_logging(
    log_level: str = "INFO",
    log_to_file: bool = False,
    log_dir: str = "logs",
    rotation: str = "100 MB",
    retention: str = "30 days",
    format_type: str = "detailed"
) -> None:
    """
    Configure loguru logging for the application.

    Args:
        log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_to_file: Whether to log to files in addition to console
        log_dir: Directory for log files
        rotation: When to rotate log files (e.g., "100 MB", "1 day")
        retention: How long to keep old log files
        format_type: Format style ("simple" or "detailed")
    """
    logger.remove()

    if format_type == "simple":
        format_string = "<level>{level: <8}</level> | <level>{message}</level>"
    else:
        format_string = (
            "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
            "<level>{message}</level>"
        )

    logger.add(
        sys.stderr,
        format=format_string,
        level=log_level,
        colorize=True,
        backtrace=True,
        diagnose=False
    )

    if log_to_file:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)

        logger.add(
            log_path / "booking_agent_{time:YYYY-MM-DD}.log",
            format=format_string,
            level=log_level,
            rotation=rotation,
            retention=retention,
            compression="zip",
            backtrace=True,
            diagnose=False
        )

        logger.add(
            log_path / "errors_{time:YYYY-MM-DD}.log",
            format=format_string,
            level="ERROR",
            rotation=rotation,
            retention=retention,
            compression="zip",
            backtrace=True,
            diagnose=False
        )

        # Booking audit trail is kept longer for payment reconciliation
        logger.add(
            log_path / "bookings_{time:YYYY-MM-DD}.log",
            format=format_string,
            level="INFO",
            rotation="1 day",
            retention="1 year",
            compression="zip",
            filter=lambda record: "BOOKING" in record["extra"].get("category", "")
        )

    logger.info(
        f"Logging configured: level={log_level}, "
        f"file_logging={log_to_file}, "
        f"format={format_type}"
    )


def log_booking_event(
    event_type: str,
    phone_number: Optional[str] = None,
    booking_id: Optional[int] = None,
    details: Optional[dict] = None
) -> None:
    """
    Log a booking-related event for the audit trail.

    Args:
        event_type: Type of event (e.g., "CREATED", "PAID", "FAILED")
        phone_number: Customer phone number
        booking_id: Booking id from the ledger
        details: Additional event details
    """
    details = details or {}

    logger.bind(category="BOOKING").info(
        f"BOOKING {event_type} | "
        f"phone={phone_number} | "
        f"booking_id={booking_id} | "
        f"details={details}"
    )


def log_conversation_event(
    event_type: str,
    phone_number: Optional[str] = None,
    state: Optional[str] = None,
    details: Optional[dict] = None
) -> None:
    """
    Log a conversation-related event.

    Args:
        event_type: Type of event (e.g., "STARTED", "STATE_CHANGE", "CONTEXT_REPAIRED")
        phone_number: Customer phone number
        state: Conversation state
        details: Additional event details
    """
    details = details or {}

    logger.bind(category="CONVERSATION").info(
        f"CONVERSATION {event_type} | "
        f"phone={phone_number} | "
        f"state={state} | "
        f"details={details}"
    )
