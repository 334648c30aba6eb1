"""
State handlers for the booking dialog.

Each handler takes the phone number, the user's text and the decoded context
for the current state, and returns a Transition describing the replies to
send and the state/context to persist. Handlers never persist or send
anything themselves; the DialogEngine does that once the handler returns.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Dict, List, Optional

from loguru import logger

from models.schemas import HotelInfo
from nlu.parsers import parse_booking_details, parse_stay_date, calculate_nights
from services.catalog import HotelCatalog
from services.booking_service import BookingLedger
from . import messages
from .context import (
    DialogContext,
    EmptyContext,
    SelectHotelContext,
    SelectDatesContext,
    ConfirmBookingContext,
    PaymentContext,
)
from .states import ConversationState


MAX_CHOICE_DIGITS = 3


def parse_choice(text: str, count: int) -> Optional[int]:
    """
    Parse a 1-based menu choice.

    Returns:
        The choice, or None if ``text`` is not a number between 1 and ``count``
    """
    if not text.isdecimal() or len(text) > MAX_CHOICE_DIGITS:
        return None
    try:
        choice = int(text)
    except ValueError:
        return None
    return choice if 1 <= choice <= count else None


@dataclass(frozen=True)
class PaymentRequest:
    """Payment to start once the transition has been persisted."""

    booking_id: int
    amount: Decimal


@dataclass
class Transition:
    """
    Result of handling one message.

    Attributes:
        replies: Messages to send, in order
        next_state: State to persist
        next_context: Context to persist for ``next_state``
        payment: Payment to initiate after the update is committed
    """

    replies: List[str]
    next_state: ConversationState
    next_context: DialogContext
    payment: Optional[PaymentRequest] = None

    @classmethod
    def stay(cls, state: ConversationState, context: DialogContext, reply: str) -> "Transition":
        """Re-prompt without changing state or context."""
        return cls([reply], state, context)


Handler = Callable[[str, str, DialogContext], Transition]


class StateHandlers:
    """
    One handler per conversation state.

    Attributes:
        catalog: Hotel search
        ledger: Booking records
        currency: Label used when showing prices
    """

    def __init__(self, catalog: HotelCatalog, ledger: BookingLedger, currency: str = "KSh"):
        self.catalog = catalog
        self.ledger = ledger
        self.currency = currency
        self._handlers: Dict[ConversationState, Handler] = {
            ConversationState.WELCOME: self.handle_welcome,
            ConversationState.BROWSE_HOTELS: self.handle_browse_hotels,
            ConversationState.SELECT_HOTEL: self.handle_select_hotel,
            ConversationState.SELECT_DATES: self.handle_select_dates,
            ConversationState.CONFIRM_BOOKING: self.handle_confirm_booking,
            ConversationState.PAYMENT: self.handle_payment,
            # A finished booking starts over on the next message
            ConversationState.COMPLETED: self.handle_welcome,
        }

    def for_state(self, state: ConversationState) -> Handler:
        """Handler for ``state``; unknown states are treated as WELCOME."""
        return self._handlers.get(state, self.handle_welcome)

    def _start_over(self) -> Transition:
        return Transition([messages.start_over()], ConversationState.WELCOME, EmptyContext())

    def handle_welcome(self, phone_number: str, text: str, context: DialogContext) -> Transition:
        return Transition(
            [messages.welcome_menu()],
            ConversationState.BROWSE_HOTELS,
            EmptyContext(),
        )

    def handle_browse_hotels(self, phone_number: str, text: str, context: DialogContext) -> Transition:
        if text == "1":
            return Transition(
                [messages.location_prompt()],
                ConversationState.SELECT_HOTEL,
                SelectHotelContext(step="location"),
            )
        if text == "2":
            return Transition(
                [messages.hotel_name_prompt()],
                ConversationState.SELECT_HOTEL,
                SelectHotelContext(step="search"),
            )
        if text == "3":
            return Transition(
                [messages.customer_service_handoff()],
                ConversationState.WELCOME,
                EmptyContext(),
            )
        return Transition.stay(ConversationState.BROWSE_HOTELS, context, messages.browse_reprompt())

    def _resolve_location(self, text: str) -> str:
        """Map "1".."5" to the listed locations; anything else is searched as typed."""
        choice = parse_choice(text, len(messages.LOCATIONS))
        if choice is None:
            return text
        return messages.LOCATIONS[choice - 1]

    def handle_select_hotel(self, phone_number: str, text: str, context: DialogContext) -> Transition:
        if not isinstance(context, SelectHotelContext):
            logger.warning(f"No search step stored for {phone_number}, starting over")
            return self._start_over()

        if context.step == "location":
            query = self._resolve_location(text)
            hotels = self.catalog.by_location(query)
        else:
            query = text
            hotels = self.catalog.by_name(query)

        if not hotels:
            return Transition(
                [messages.no_hotels_found(context.step, query)],
                ConversationState.WELCOME,
                EmptyContext(),
            )

        return Transition(
            [messages.hotel_list(hotels, context.step, query, self.currency)],
            ConversationState.SELECT_DATES,
            SelectDatesContext(hotels=hotels, previous_step=context.step, query=query),
        )

    def handle_select_dates(self, phone_number: str, text: str, context: DialogContext) -> Transition:
        if not isinstance(context, SelectDatesContext) or not context.hotels:
            logger.warning(f"No hotel list stored for {phone_number}, starting over")
            return self._start_over()

        hotels = context.hotels
        choice = parse_choice(text, len(hotels))
        if choice is None:
            return Transition.stay(
                ConversationState.SELECT_DATES,
                context,
                messages.invalid_hotel_number(len(hotels)),
            )

        selected: HotelInfo = hotels[choice - 1]
        logger.info(f"{phone_number} selected hotel {selected.id} ({selected.name})")

        return Transition(
            [messages.booking_details_prompt(selected, self.currency)],
            ConversationState.CONFIRM_BOOKING,
            ConfirmBookingContext(selected_hotel=selected),
        )

    def handle_confirm_booking(self, phone_number: str, text: str, context: DialogContext) -> Transition:
        if not isinstance(context, ConfirmBookingContext):
            logger.warning(f"No selected hotel stored for {phone_number}, starting over")
            return self._start_over()

        details = parse_booking_details(text)
        if not details.valid:
            return Transition.stay(
                ConversationState.CONFIRM_BOOKING,
                context,
                messages.unparsed_booking_details(),
            )

        nights = calculate_nights(details.check_in, details.check_out)
        if nights <= 0:
            return Transition.stay(
                ConversationState.CONFIRM_BOOKING,
                context,
                messages.invalid_stay_dates(),
            )

        hotel = context.selected_hotel
        total_amount = hotel.price_per_night * nights

        return Transition(
            [messages.booking_summary(hotel, details, nights, total_amount, self.currency)],
            ConversationState.PAYMENT,
            PaymentContext(
                selected_hotel=hotel,
                booking_details=details,
                total_amount=total_amount,
                nights=nights,
            ),
        )

    def handle_payment(self, phone_number: str, text: str, context: DialogContext) -> Transition:
        if not isinstance(context, PaymentContext):
            logger.warning(f"No booking summary stored for {phone_number}, starting over")
            return self._start_over()

        reply = text.lower()

        if reply == "cancel":
            # Any payment already in flight still resolves its booking
            return Transition(
                [messages.booking_cancelled()],
                ConversationState.WELCOME,
                EmptyContext(),
            )

        if reply != "confirm":
            return Transition.stay(ConversationState.PAYMENT, context, messages.payment_reprompt())

        if context.pending_booking_id is not None:
            logger.info(
                f"Duplicate CONFIRM from {phone_number}, booking "
                f"{context.pending_booking_id} is still awaiting payment"
            )
            return Transition.stay(
                ConversationState.PAYMENT,
                context,
                messages.payment_already_pending(context.pending_booking_id),
            )

        details = context.booking_details
        booking_id = self.ledger.create(
            phone_number=phone_number,
            hotel=context.selected_hotel,
            check_in=parse_stay_date(details.check_in),
            check_out=parse_stay_date(details.check_out),
            guests=details.guests,
            total_amount=context.total_amount,
        )

        return Transition(
            [messages.payment_instructions(context.total_amount, booking_id, phone_number, self.currency)],
            ConversationState.PAYMENT,
            context.model_copy(update={"pending_booking_id": booking_id}),
            payment=PaymentRequest(booking_id=booking_id, amount=context.total_amount),
        )
