"""
Parsing helpers for the hotel booking chat agent.

This module turns free-form chat text into structured booking data.
"""
from .parsers import (
    parse_booking_details,
    parse_stay_date,
    calculate_nights,
)

__all__ = ["parse_booking_details", "parse_stay_date", "calculate_nights"]
