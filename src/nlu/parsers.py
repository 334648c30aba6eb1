"""
Helper functions for parsing booking details and stay dates from chat text.

The booking block users send looks like:

    Check-in date: 15/08/2024
    Check-out date: 17/08/2024
    Number of guests: 2
"""
import math
import re
from datetime import datetime, date
from typing import Optional
from loguru import logger

from models.schemas import BookingDetails

CHECK_IN_LABEL = "check-in date:"
CHECK_OUT_LABEL = "check-out date:"
GUESTS_LABEL = "number of guests:"

STAY_DATE_FORMAT = "%d/%m/%Y"

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def _value_after_colon(line: str) -> str:
    return line.partition(":")[2].strip()


def _parse_leading_int(value: str) -> Optional[int]:
    """Read the integer at the start of ``value`` ("2 adults" -> 2), or None."""
    match = _LEADING_INT.match(value)
    if not match:
        return None
    return int(match.group(1))


def parse_booking_details(message: str) -> BookingDetails:
    """
    Extract check-in, check-out and guest count from a multi-line message.

    Labels are matched case-insensitively anywhere in a line and may come in
    any order. When a label appears more than once the last one wins. Dates
    are returned as typed; they are validated by ``calculate_nights``.

    Args:
        message: Raw message text

    Returns:
        BookingDetails with ``valid`` set when both dates are present and the
        guest count is a positive integer
    """
    details = BookingDetails()

    try:
        for line in message.splitlines():
            lowered = line.lower()

            if CHECK_IN_LABEL in lowered:
                details.check_in = _value_after_colon(line)
            elif CHECK_OUT_LABEL in lowered:
                details.check_out = _value_after_colon(line)
            elif GUESTS_LABEL in lowered:
                details.guests = _parse_leading_int(_value_after_colon(line))

        details.valid = bool(
            details.check_in
            and details.check_out
            and details.guests is not None
            and details.guests > 0
        )
    except Exception as e:
        logger.warning(f"Error parsing booking details: {e}")
        details.valid = False

    return details


def parse_stay_date(date_str: Optional[str]) -> Optional[date]:
    """
    Convert a DD/MM/YYYY string to a date.

    Args:
        date_str: Date string such as "15/08/2024" (single-digit day/month allowed)

    Returns:
        Parsed date, or None if the string is not a real calendar date
    """
    if not date_str:
        return None

    try:
        return datetime.strptime(date_str.strip(), STAY_DATE_FORMAT).date()
    except ValueError:
        return None


def calculate_nights(check_in: Optional[str], check_out: Optional[str]) -> int:
    """
    Number of nights between two DD/MM/YYYY dates.

    Returns 0 when either date is invalid or check-out is not strictly after
    check-in; callers must treat 0 as a rejected range.

    Args:
        check_in: Check-in date string
        check_out: Check-out date string

    Returns:
        Number of nights, rounded up to whole days
    """
    start = parse_stay_date(check_in)
    end = parse_stay_date(check_out)

    if start is None or end is None or start >= end:
        logger.debug(
            f"Invalid stay dates or check-out not after check-in: {check_in!r} -> {check_out!r}"
        )
        return 0

    seconds = (datetime.combine(end, datetime.min.time())
               - datetime.combine(start, datetime.min.time())).total_seconds()
    return math.ceil(seconds / 86400)
