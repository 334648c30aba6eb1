"""
Tests for payment initiation and the payment outcome continuation.

Tests:
- CONFIRM creates one pending booking and starts one payment
- Paid and failed outcomes update the booking, notify the user and move the conversation
- Duplicate outcomes and duplicate CONFIRMs have no effect
- Outcomes racing a CANCEL or a new message are serialized per phone number
- Gateway and persistence failures around payment
"""
import threading
from decimal import Decimal
from unittest.mock import patch

import pytest

from conftest import PHONE, walk_to_payment
from conversation.context import EmptyContext, PaymentContext, load_context
from conversation.dialog_engine import DialogEngine
from conversation.states import ConversationState
from error_handling.exceptions import DatabaseConnectionError, PaymentError, PaymentInitiationError
from models.schemas import BookingStatus
from services.payment_gateway import PaymentOutcome, SimulatedMpesaGateway


def conversation_state(store, phone_number: str = PHONE):
    conversation = store.get(phone_number)
    state = ConversationState(conversation.state)
    return state, load_context(state, conversation.context)


@pytest.fixture
def confirmed(engine, gateway):
    """Conversation at PAYMENT with a booking awaiting payment; returns its id."""
    walk_to_payment(engine)
    engine.handle_message(PHONE, "CONFIRM")
    (booking_id,) = gateway.pending_bookings()
    return booking_id


class TestConfirm:
    """Test what CONFIRM does before the payment resolves."""

    def test_confirm_creates_pending_booking(self, confirmed, ledger, hotels):
        booking = ledger.get(confirmed)

        assert booking.status == BookingStatus.PENDING
        assert booking.phone_number == PHONE
        assert booking.hotel_id == hotels[0]
        assert booking.total_amount == Decimal("30000")
        assert str(booking.check_in) == "2030-08-15"
        assert str(booking.check_out) == "2030-08-17"

    def test_confirm_records_pending_booking_in_context(self, confirmed, store):
        state, context = conversation_state(store)

        assert state == ConversationState.PAYMENT
        assert context.pending_booking_id == confirmed

    def test_confirm_sends_payment_instructions(self, confirmed, notifier):
        text = notifier.texts()[-1]

        assert "Payment Required" in text
        assert f"Booking ID: {confirmed}" in text
        assert "KSh 30,000" in text
        assert PHONE in text

    def test_second_confirm_does_not_create_another_booking(self, confirmed, engine, ledger, gateway):
        replies = engine.handle_message(PHONE, "CONFIRM")

        assert f"Payment for booking {confirmed} is already in progress" in replies[0]
        assert gateway.pending_bookings() == [confirmed]
        assert ledger.get(confirmed + 1) is None


class TestPaymentOutcome:
    """Test the continuation for paid and failed outcomes."""

    def test_paid(self, confirmed, engine, gateway, ledger, store, notifier):
        assert gateway.resolve(confirmed, succeeded=True, transaction_ref="MP1723712345678") is True

        booking = ledger.get(confirmed)
        assert booking.status == BookingStatus.PAID
        assert booking.transaction_ref == "MP1723712345678"

        text = notifier.texts()[-1]
        assert "Payment successful" in text
        assert f"Booking ID: {confirmed}" in text
        assert "Transaction ID: MP1723712345678" in text

        state, context = conversation_state(store)
        assert state == ConversationState.COMPLETED
        assert isinstance(context, EmptyContext)

    def test_next_message_after_completion_shows_menu(self, confirmed, engine, gateway, store):
        gateway.resolve(confirmed, succeeded=True, transaction_ref="MP1")

        replies = engine.handle_message(PHONE, "hi")

        assert "Welcome to Hotel Booking Bot" in replies[0]

    def test_failed(self, confirmed, gateway, ledger, store, notifier):
        gateway.resolve(confirmed, succeeded=False)

        assert ledger.get(confirmed).status == BookingStatus.FAILED
        assert f"Payment for booking {confirmed} was not completed" in notifier.texts()[-1]

        state, context = conversation_state(store)
        assert state == ConversationState.PAYMENT
        assert isinstance(context, PaymentContext)
        assert context.pending_booking_id is None

    def test_confirm_after_failure_creates_new_booking(self, confirmed, engine, gateway, ledger):
        gateway.resolve(confirmed, succeeded=False)

        engine.handle_message(PHONE, "CONFIRM")

        (retry_id,) = gateway.pending_bookings()
        assert retry_id != confirmed
        assert ledger.get(retry_id).status == BookingStatus.PENDING

    def test_duplicate_outcome_is_ignored(self, confirmed, engine, gateway, ledger, store, notifier):
        gateway.resolve(confirmed, succeeded=True, transaction_ref="MP1")
        sent = len(notifier.texts())

        engine.complete_payment(PaymentOutcome(PHONE, confirmed, BookingStatus.FAILED))

        assert ledger.get(confirmed).status == BookingStatus.PAID
        assert len(notifier.texts()) == sent
        assert conversation_state(store)[0] == ConversationState.COMPLETED

    def test_gateway_ignores_second_callback(self, confirmed, gateway):
        gateway.resolve(confirmed, succeeded=True, transaction_ref="MP1")

        assert gateway.resolve(confirmed, succeeded=True, transaction_ref="MP1") is False

    def test_outcome_for_older_booking_leaves_conversation(self, confirmed, engine, gateway, store, ledger):
        gateway.resolve(confirmed, succeeded=False)
        engine.handle_message(PHONE, "CONFIRM")
        (current,) = gateway.pending_bookings()

        engine.complete_payment(PaymentOutcome(PHONE, confirmed, BookingStatus.PAID, "MP-late"))

        state, context = conversation_state(store)
        assert state == ConversationState.PAYMENT
        assert context.pending_booking_id == current

    def test_notification_failure_still_advances(self, confirmed, gateway, notifier, store):
        notifier.succeed = False

        gateway.resolve(confirmed, succeeded=True, transaction_ref="MP1")

        assert conversation_state(store)[0] == ConversationState.COMPLETED

    def test_ledger_failure_still_notifies_and_advances(self, confirmed, engine, gateway, notifier, store):
        with patch.object(engine.ledger, "update_status", side_effect=DatabaseConnectionError("down")):
            gateway.resolve(confirmed, succeeded=True, transaction_ref="MP1")

        assert "Payment successful" in notifier.texts()[-1]
        assert conversation_state(store)[0] == ConversationState.COMPLETED


class TestCancelRace:
    """Test outcomes that arrive around a CANCEL."""

    def test_paid_after_cancel(self, confirmed, engine, gateway, ledger, store, notifier):
        engine.handle_message(PHONE, "CANCEL")

        gateway.resolve(confirmed, succeeded=True, transaction_ref="MP1")

        assert ledger.get(confirmed).status == BookingStatus.PAID
        assert "Payment successful" in notifier.texts()[-1]
        state, context = conversation_state(store)
        assert state == ConversationState.WELCOME
        assert isinstance(context, EmptyContext)

    def test_outcome_waits_for_in_flight_cancel(self, confirmed, engine, gateway, ledger, store, notifier):
        """
        Hold the phone's lock inside a CANCEL while the outcome arrives; the
        outcome must only run after the CANCEL has been committed.
        """
        cancel_started = threading.Event()
        release_cancel = threading.Event()
        original_update = engine.store.update

        def slow_update(phone_number, state, context_json):
            cancel_started.set()
            assert release_cancel.wait(5)
            return original_update(phone_number, state, context_json)

        with patch.object(engine.store, "update", side_effect=slow_update):
            cancel = threading.Thread(target=engine.handle_message, args=(PHONE, "CANCEL"))
            cancel.start()
            assert cancel_started.wait(5)

        outcome = threading.Thread(
            target=gateway.resolve,
            args=(confirmed,),
            kwargs={"succeeded": True, "transaction_ref": "MP1"},
        )
        outcome.start()
        outcome.join(0.2)
        assert outcome.is_alive()
        assert ledger.get(confirmed).status == BookingStatus.PENDING

        release_cancel.set()
        cancel.join(5)
        outcome.join(5)

        assert ledger.get(confirmed).status == BookingStatus.PAID
        assert conversation_state(store)[0] == ConversationState.WELCOME
        texts = notifier.texts()
        assert texts.index("Booking cancelled. Feel free to start a new search anytime!") < len(texts) - 1
        assert "Payment successful" in texts[-1]

    def test_concurrent_confirms_create_one_booking(self, engine, gateway, ledger):
        walk_to_payment(engine)
        threads = [
            threading.Thread(target=engine.handle_message, args=(PHONE, "CONFIRM"))
            for _ in range(4)
        ]

        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(5)

        assert len(gateway.pending_bookings()) == 1


class TestInitiationFailure:
    """Test a gateway that refuses the payment request."""

    def test_failed_initiation_marks_booking_failed(self, engine, gateway, ledger, store, notifier):
        walk_to_payment(engine)

        with patch.object(gateway, "initiate", side_effect=PaymentInitiationError("STK push rejected")):
            replies = engine.handle_message(PHONE, "CONFIRM")

        assert len(replies) == 2
        assert "Payment Required" in replies[0]
        assert "couldn't start the M-Pesa payment for booking 1" in replies[1]
        assert ledger.get(1).status == BookingStatus.FAILED

        state, context = conversation_state(store)
        assert state == ConversationState.PAYMENT
        assert context.pending_booking_id is None

    def test_confirm_again_after_failed_initiation(self, engine, gateway, ledger):
        walk_to_payment(engine)
        with patch.object(gateway, "initiate", side_effect=RuntimeError("network down")):
            engine.handle_message(PHONE, "CONFIRM")

        engine.handle_message(PHONE, "CONFIRM")

        assert gateway.pending_bookings() == [2]

    def test_persist_failure_after_confirm_abandons_booking(self, engine, store, gateway, ledger, notifier):
        walk_to_payment(engine)

        with patch.object(store, "update", side_effect=DatabaseConnectionError("write failed")):
            engine.handle_message(PHONE, "CONFIRM")

        assert ledger.get(1).status == BookingStatus.FAILED
        assert gateway.pending_bookings() == []
        state, context = conversation_state(store)
        assert context.pending_booking_id is None


class TestSimulatedMpesaGateway:
    """Test the timer-driven simulated gateway end to end."""

    def test_simulated_payment_completes_booking(self, store, catalog, ledger, notifier, hotels):
        gateway = SimulatedMpesaGateway(delay_seconds=0.05)
        done = threading.Event()
        engine = DialogEngine(store, catalog, ledger, notifier, gateway)
        original = engine.complete_payment

        def complete_and_signal(outcome):
            original(outcome)
            done.set()

        engine.complete_payment = complete_and_signal
        try:
            walk_to_payment(engine)
            engine.handle_message(PHONE, "CONFIRM")
            assert done.wait(5)
        finally:
            gateway.shutdown()

        booking = ledger.get(1)
        assert booking.status == BookingStatus.PAID
        assert booking.transaction_ref.startswith("MP")
        assert conversation_state(store)[0] == ConversationState.COMPLETED

    def test_simulated_failure(self):
        gateway = SimulatedMpesaGateway(delay_seconds=0.01, succeed=False)
        outcomes = []
        done = threading.Event()

        def record(outcome):
            outcomes.append(outcome)
            done.set()

        gateway.initiate(PHONE, Decimal("100"), 42, record)
        assert done.wait(5)

        assert outcomes[0].status == BookingStatus.FAILED
        assert outcomes[0].transaction_ref is None

    def test_duplicate_initiation_rejected(self):
        gateway = SimulatedMpesaGateway(delay_seconds=60)
        try:
            gateway.initiate(PHONE, Decimal("100"), 7, lambda outcome: None)
            with pytest.raises(PaymentInitiationError):
                gateway.initiate(PHONE, Decimal("100"), 7, lambda outcome: None)
        finally:
            gateway.shutdown()

    def test_shutdown_reports_each_dropped_payment(self):
        gateway = SimulatedMpesaGateway(delay_seconds=60)
        gateway.initiate(PHONE, Decimal("30000"), 7, lambda outcome: None)
        gateway.initiate("254722222222", Decimal("9000"), 8, lambda outcome: None)

        with patch("services.payment_gateway.log_reconciliation_failure") as report:
            gateway.shutdown()

        dropped = sorted((c.args[2], c.args[3]) for c in report.call_args_list)
        assert dropped == [(PHONE, 7), ("254722222222", 8)]
        assert report.call_args_list[0].args[0] == "await_outcome"


class TestCallbackGatewayShutdown:
    """Test payments still awaiting a provider callback at shutdown."""

    def test_shutdown_reports_dropped_payment(self, engine, gateway, ledger):
        walk_to_payment(engine)
        engine.handle_message(PHONE, "CONFIRM")
        (booking_id,) = gateway.pending_bookings()

        with patch("services.payment_gateway.log_reconciliation_failure") as report:
            gateway.shutdown()

        report.assert_called_once()
        step, error, phone_number, reported_id, details = report.call_args.args
        assert (step, phone_number, reported_id) == ("await_outcome", PHONE, booking_id)
        assert isinstance(error, PaymentError)
        assert Decimal(details["amount"]) == Decimal("30000")
        assert gateway.pending_bookings() == []
        assert ledger.get(booking_id).status == BookingStatus.PENDING
