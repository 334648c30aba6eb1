"""
Dialog engine for the hotel booking chat.

Orchestrates one inbound message end to end:

1. Hold the per-phone lock
2. Load (or create) the conversation and decode its context
3. Dispatch to the handler for the current state
4. Persist the new state and context in a single update
5. Send the replies in order
6. Start the payment, if the transition asked for one

It also owns the payment continuation, which runs under the same per-phone
lock so it can never interleave with an inbound message for that number.
"""
from typing import List, Optional

from loguru import logger

from error_handling.exceptions import BookingSystemError, MessageDeliveryError
from error_handling.error_messages import PAYMENT_START_FAILED
from error_handling.handlers import handle_collaborator_error, log_reconciliation_failure
from error_handling.logging_config import log_conversation_event
from models.schemas import BookingStatus
from notifications.whatsapp import Notifier
from services.booking_service import BookingLedger
from services.catalog import HotelCatalog
from services.conversation_store import ConversationStore
from services.payment_gateway import PaymentGateway, PaymentOutcome
from . import messages
from .context import EmptyContext, PaymentContext, load_context
from .handlers import PaymentRequest, StateHandlers, Transition
from .locks import PhoneLockRegistry
from .states import ConversationState


class DialogEngine:
    """
    Per-conversation state machine driver.

    Attributes:
        store: Conversation persistence
        ledger: Booking records
        notifier: Outbound message delivery
        gateway: Payment provider
        locks: Per-phone lock registry shared with the payment continuation
        handlers: State handlers

    Example:
        engine = DialogEngine(store, catalog, ledger, LoggingNotifier(), gateway)
        engine.handle_message("254712345678", "hi")
    """

    def __init__(
        self,
        store: ConversationStore,
        catalog: HotelCatalog,
        ledger: BookingLedger,
        notifier: Notifier,
        gateway: PaymentGateway,
        currency: str = "KSh",
        locks: Optional[PhoneLockRegistry] = None,
    ):
        self.store = store
        self.ledger = ledger
        self.notifier = notifier
        self.gateway = gateway
        self.locks = locks or PhoneLockRegistry()
        self.handlers = StateHandlers(catalog, ledger, currency)

        logger.info("DialogEngine initialized")

    # ========================================================================
    # Inbound messages
    # ========================================================================

    def handle_message(self, phone_number: str, text: str) -> List[str]:
        """
        Process one text message from ``phone_number``.

        Collaborator failures are answered with an apology and leave the stored
        conversation untouched. Anything else propagates to the caller.

        Args:
            phone_number: Sender phone number
            text: Message body

        Returns:
            Replies sent to the user, in order
        """
        text = (text or "").strip()

        with self.locks.hold(phone_number):
            state: Optional[ConversationState] = None
            try:
                state, context = self._load(phone_number)
                handler = self.handlers.for_state(state)
                transition = handler(phone_number, text, context)
            except BookingSystemError as e:
                return self._apologize(e, phone_number, state)

            try:
                self._persist(phone_number, transition)
            except BookingSystemError as e:
                if transition.payment is not None:
                    self._abandon_booking(phone_number, transition.payment.booking_id, e)
                return self._apologize(e, phone_number, state)

            logger.info(f"{phone_number}: {state.value} -> {transition.next_state.value}")
            if state != transition.next_state:
                log_conversation_event(
                    "STATE_CHANGE",
                    phone_number=phone_number,
                    state=transition.next_state.value,
                    details={"from": state.value},
                )

            replies = list(transition.replies)
            for reply in replies:
                self.send_reply(phone_number, reply)

            if transition.payment is not None:
                replies.extend(self._start_payment(phone_number, transition))

            return replies

    def _load(self, phone_number: str):
        """Fetch or create the conversation and decode its context."""
        conversation = self.store.get(phone_number)
        if conversation is None:
            conversation = self.store.create(phone_number)
            log_conversation_event(
                "STARTED",
                phone_number=phone_number,
                state=conversation.state,
            )

        state = ConversationState.from_stored(conversation.state)
        if state is None:
            logger.warning(
                f"Unknown stored state '{conversation.state}' for {phone_number}, "
                "treating as welcome"
            )
            return ConversationState.WELCOME, EmptyContext()

        context = load_context(state, conversation.context, phone_number)
        return state, context

    def _persist(self, phone_number: str, transition: Transition) -> None:
        self.store.update(
            phone_number,
            transition.next_state,
            transition.next_context.dump(),
        )

    def _apologize(
        self,
        error: BookingSystemError,
        phone_number: str,
        state: Optional[ConversationState],
    ) -> List[str]:
        reply = handle_collaborator_error(error, phone_number, state.value if state else None)
        self.send_reply(phone_number, reply)
        return [reply]

    def send_reply(self, phone_number: str, text: str) -> bool:
        """Send one message; failures are logged, never raised."""
        try:
            return self.notifier.send(phone_number, text)
        except Exception as e:
            logger.opt(exception=e).error(f"Notifier raised while sending to {phone_number}")
            return False

    # ========================================================================
    # Payment
    # ========================================================================

    def _start_payment(self, phone_number: str, transition: Transition) -> List[str]:
        """
        Ask the gateway for the payment requested by ``transition``.

        Runs after the PAYMENT context with pendingBookingId is committed, so
        a fast outcome always finds it. If the gateway refuses, the booking is
        marked failed and the user may CONFIRM again.

        Returns:
            Any extra replies sent
        """
        payment: PaymentRequest = transition.payment

        try:
            self.gateway.initiate(
                phone_number,
                payment.amount,
                payment.booking_id,
                self.complete_payment,
            )
            logger.bind(category="BOOKING").info(
                f"Payment initiated | phone={phone_number} | "
                f"booking_id={payment.booking_id} | amount={payment.amount}"
            )
            return []
        except Exception as e:
            logger.opt(exception=e).error(
                f"Payment initiation failed for booking {payment.booking_id} ({phone_number})"
            )

        self._abandon_booking(phone_number, payment.booking_id, None)

        if isinstance(transition.next_context, PaymentContext):
            try:
                self.store.update(
                    phone_number,
                    ConversationState.PAYMENT,
                    transition.next_context.model_copy(update={"pending_booking_id": None}).dump(),
                )
            except BookingSystemError as e:
                log_reconciliation_failure("clear_pending_booking", e, phone_number, payment.booking_id)

        reply = PAYMENT_START_FAILED.format(booking_id=payment.booking_id)
        self.send_reply(phone_number, reply)
        return [reply]

    def _abandon_booking(
        self,
        phone_number: str,
        booking_id: int,
        cause: Optional[Exception],
    ) -> None:
        """Mark a booking whose payment will never start as failed."""
        if cause is not None:
            log_reconciliation_failure("persist_pending_booking", cause, phone_number, booking_id)
        try:
            self.ledger.update_status(booking_id, BookingStatus.FAILED)
        except BookingSystemError as e:
            log_reconciliation_failure(
                "record_status",
                e,
                phone_number,
                booking_id,
                {"status": BookingStatus.FAILED.value},
            )

    def complete_payment(self, outcome: PaymentOutcome) -> None:
        """
        Continuation invoked by the gateway with the payment outcome.

        Records the outcome on the booking, tells the user, then advances the
        conversation if it is still waiting on this booking. A repeated
        outcome for an already resolved booking is ignored. Failures in one
        step are logged for reconciliation and do not stop the others.

        Args:
            outcome: Outcome reported by the gateway
        """
        phone_number = outcome.phone_number
        booking_id = outcome.booking_id

        with self.locks.hold(phone_number):
            try:
                recorded = self.ledger.update_status(
                    booking_id,
                    outcome.status,
                    outcome.transaction_ref,
                )
            except BookingSystemError as e:
                log_reconciliation_failure(
                    "record_status",
                    e,
                    phone_number,
                    booking_id,
                    {"status": outcome.status.value, "transaction_ref": outcome.transaction_ref},
                )
                recorded = None

            if recorded is False:
                logger.warning(
                    f"Duplicate payment outcome for booking {booking_id} ignored "
                    f"(status={outcome.status.value})"
                )
                return

            if outcome.succeeded:
                text = messages.payment_successful(booking_id, outcome.transaction_ref)
            else:
                text = messages.payment_failed(booking_id)

            if not self.send_reply(phone_number, text):
                log_reconciliation_failure(
                    "notify",
                    MessageDeliveryError(
                        "Payment outcome message was not delivered",
                        recipient=phone_number,
                    ),
                    phone_number,
                    booking_id,
                    {"status": outcome.status.value},
                )

            self._advance_after_payment(outcome)

    def _advance_after_payment(self, outcome: PaymentOutcome) -> None:
        phone_number = outcome.phone_number
        booking_id = outcome.booking_id

        try:
            conversation = self.store.get(phone_number)
            state = ConversationState.from_stored(conversation.state) if conversation else None
            context = load_context(state, conversation.context, phone_number) if state else None

            if (
                state != ConversationState.PAYMENT
                or not isinstance(context, PaymentContext)
                or context.pending_booking_id != booking_id
            ):
                logger.info(
                    f"Conversation {phone_number} is no longer waiting on booking "
                    f"{booking_id}, leaving it in state {state}"
                )
                return

            if outcome.succeeded:
                next_state = ConversationState.COMPLETED
                next_context = EmptyContext()
            else:
                next_state = ConversationState.PAYMENT
                next_context = context.model_copy(update={"pending_booking_id": None})

            self.store.update(phone_number, next_state, next_context.dump())
            log_conversation_event(
                "STATE_CHANGE",
                phone_number=phone_number,
                state=next_state.value,
                details={"from": state.value, "booking_id": booking_id},
            )
        except BookingSystemError as e:
            log_reconciliation_failure(
                "advance_conversation",
                e,
                phone_number,
                booking_id,
                {"status": outcome.status.value},
            )
