"""
Conversation package for the hotel booking dialog.

This package provides:
- ConversationState: Enum for conversation states
- Context models: Per-state pydantic models stored as JSON
- StateHandlers: One handler per state, returning a Transition
- DialogEngine: Loads, dispatches, persists and replies for each message,
  and resolves payment outcomes
"""

from .states import ConversationState
from .context import (
    DialogContext,
    EmptyContext,
    SelectHotelContext,
    SelectDatesContext,
    ConfirmBookingContext,
    PaymentContext,
    load_context,
    dump_context,
)
from .handlers import StateHandlers, Transition, PaymentRequest
from .locks import PhoneLockRegistry
from .dialog_engine import DialogEngine

__all__ = [
    "ConversationState",
    "DialogContext",
    "EmptyContext",
    "SelectHotelContext",
    "SelectDatesContext",
    "ConfirmBookingContext",
    "PaymentContext",
    "load_context",
    "dump_context",
    "StateHandlers",
    "Transition",
    "PaymentRequest",
    "PhoneLockRegistry",
    "DialogEngine",
]
