"""
Per-state conversation context models.

Each conversation state carries its own context shape. The stored JSON does
not include the state; the conversation row's state column selects which
model the JSON is decoded into.
"""

from decimal import Decimal
from typing import Dict, List, Literal, Optional, Type

from loguru import logger
from pydantic import BaseModel, Field, ConfigDict, ValidationError

from models.schemas import HotelInfo, BookingDetails
from .states import ConversationState


class DialogContext(BaseModel):
    """Base class for all per-state context payloads."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def dump(self) -> str:
        """Serialize to the JSON stored in the conversations table."""
        return self.model_dump_json(by_alias=True)


class EmptyContext(DialogContext):
    """Context for states that carry no data (welcome, browse_hotels, completed)."""
    pass


class SelectHotelContext(DialogContext):
    """
    Context while waiting for a location or hotel name.

    Attributes:
        step: "location" when browsing by location, "search" when searching by name
    """
    step: Literal["location", "search"]


class SelectDatesContext(DialogContext):
    """
    Context while the user picks a hotel from the list they were shown.

    Attributes:
        hotels: Hotels in the order they were listed (the user answers with a 1-based index)
        previous_step: How the list was found ("location" or "search")
        query: The location or name that was searched
    """
    hotels: List[HotelInfo]
    previous_step: Optional[str] = Field(default=None, alias="previousStep")
    query: Optional[str] = None


class ConfirmBookingContext(DialogContext):
    """
    Context while waiting for the booking details block.

    Attributes:
        selected_hotel: Hotel the user picked
        step: Always "dates_input"
    """
    selected_hotel: HotelInfo = Field(alias="selectedHotel")
    step: Literal["dates_input"] = "dates_input"


class PaymentContext(DialogContext):
    """
    Context while waiting for CONFIRM/CANCEL or for a payment to resolve.

    Attributes:
        selected_hotel: Hotel being booked
        booking_details: Parsed dates and guests
        total_amount: price_per_night x nights
        nights: Number of nights (always positive)
        pending_booking_id: Booking awaiting payment, set once CONFIRM has been processed
    """
    selected_hotel: HotelInfo = Field(alias="selectedHotel")
    booking_details: BookingDetails = Field(alias="bookingDetails")
    total_amount: Decimal = Field(alias="totalAmount", gt=0)
    nights: int = Field(ge=1)
    pending_booking_id: Optional[int] = Field(default=None, alias="pendingBookingId")


CONTEXT_MODELS: Dict[ConversationState, Type[DialogContext]] = {
    ConversationState.WELCOME: EmptyContext,
    ConversationState.BROWSE_HOTELS: EmptyContext,
    ConversationState.SELECT_HOTEL: SelectHotelContext,
    ConversationState.SELECT_DATES: SelectDatesContext,
    ConversationState.CONFIRM_BOOKING: ConfirmBookingContext,
    ConversationState.PAYMENT: PaymentContext,
    ConversationState.COMPLETED: EmptyContext,
}


def load_context(
    state: ConversationState,
    raw: Optional[str],
    phone_number: Optional[str] = None,
) -> DialogContext:
    """
    Decode stored context JSON into the model expected by ``state``.

    Malformed or mismatched context is not fatal: it is logged and replaced
    by an EmptyContext, which handlers treat as "start over".

    Args:
        state: Current conversation state
        raw: JSON text from the conversations table
        phone_number: For logging only

    Returns:
        Context model instance
    """
    model = CONTEXT_MODELS.get(state, EmptyContext)

    try:
        return model.model_validate_json(raw or "{}")
    except ValidationError as e:
        logger.warning(
            f"Discarding context that does not match state {state} for {phone_number}: "
            f"{e.error_count()} validation error(s)"
        )
        return EmptyContext()


def dump_context(context: DialogContext) -> str:
    """
    Serialize a context model for storage.

    Args:
        context: Context to serialize

    Returns:
        JSON text using the stored (camelCase) field names
    """
    return context.dump()
