"""
Conversation state definitions for the hotel booking dialog.

This module defines all possible states in the booking conversation flow.
"""

from enum import Enum
from typing import Optional


class ConversationState(str, Enum):
    """
    Enum representing all possible states in a booking conversation.

    The conversation typically flows:
    welcome -> browse_hotels -> select_hotel -> select_dates
    -> confirm_booking -> payment -> completed

    COMPLETED is not terminal: the next message is handled like WELCOME.
    Cancelling, a customer-service request or an empty search result send the
    user back to WELCOME.
    """

    WELCOME = "welcome"
    """Initial state; any message gets the main menu."""

    BROWSE_HOTELS = "browse_hotels"
    """Main menu shown, waiting for 1, 2 or 3."""

    SELECT_HOTEL = "select_hotel"
    """Waiting for a location or a hotel name to search."""

    SELECT_DATES = "select_dates"
    """Hotel list shown, waiting for the hotel number."""

    CONFIRM_BOOKING = "confirm_booking"
    """Hotel chosen, waiting for the check-in/check-out/guests block."""

    PAYMENT = "payment"
    """Summary shown, waiting for CONFIRM or CANCEL (or for payment to resolve)."""

    COMPLETED = "completed"
    """Payment received and booking confirmed."""

    def __str__(self) -> str:
        """Return the string value of the state."""
        return self.value

    @classmethod
    def from_stored(cls, value: Optional[str]) -> Optional["ConversationState"]:
        """
        Look up a state from its stored value.

        Args:
            value: Value read from the conversations table

        Returns:
            Matching ConversationState, or None for unknown values
        """
        try:
            return cls(value)
        except ValueError:
            return None
