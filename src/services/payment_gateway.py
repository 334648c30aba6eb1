"""
Payment gateways for M-Pesa style "push and wait" payments.

``initiate`` returns immediately; the outcome arrives later, exactly once per
initiation, through the callback supplied by the caller.

- SimulatedMpesaGateway resolves every payment after a fixed delay on a timer
  thread, standing in for the STK push and PIN entry.
- CallbackPaymentGateway waits for the provider's callback to be fed in through
  ``resolve`` (e.g. from a webhook endpoint).
"""
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Dict, List, Optional, Tuple

from loguru import logger

from models.schemas import BookingStatus
from error_handling.exceptions import PaymentError, PaymentInitiationError
from error_handling.handlers import log_reconciliation_failure


@dataclass(frozen=True)
class PaymentOutcome:
    """Terminal result of one payment initiation."""

    phone_number: str
    booking_id: int
    status: BookingStatus
    transaction_ref: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == BookingStatus.PAID


OutcomeCallback = Callable[[PaymentOutcome], None]


class PaymentGateway(ABC):
    """Interface for asynchronous payment providers."""

    @abstractmethod
    def initiate(
        self,
        phone_number: str,
        amount: Decimal,
        booking_id: int,
        on_outcome: OutcomeCallback,
    ) -> None:
        """
        Request a payment and return without waiting for it.

        Args:
            phone_number: Payer's phone number
            amount: Amount to charge
            booking_id: Booking the payment is for
            on_outcome: Called exactly once with the outcome

        Raises:
            PaymentInitiationError: If the request could not be sent
        """

    def shutdown(self) -> None:
        """
        Release background resources.

        Payments still waiting for an outcome are dropped; each one is logged
        for reconciliation since its booking stays pending.
        """


def _deliver(on_outcome: OutcomeCallback, outcome: PaymentOutcome) -> None:
    try:
        on_outcome(outcome)
    except Exception:
        logger.bind(category="BOOKING").exception(
            f"Payment outcome handler failed | phone={outcome.phone_number} | "
            f"booking_id={outcome.booking_id} | status={outcome.status.value}"
        )


def _report_dropped(phone_number: str, booking_id: int, amount: Decimal) -> None:
    log_reconciliation_failure(
        "await_outcome",
        PaymentError(
            f"Gateway shut down before payment for booking {booking_id} resolved",
            booking_id=booking_id,
            phone_number=phone_number,
        ),
        phone_number,
        booking_id,
        {"amount": str(amount)},
    )


class SimulatedMpesaGateway(PaymentGateway):
    """
    Simulates an M-Pesa STK push that the customer approves after a delay.

    Transaction references look like ``MP1723712345678`` (epoch milliseconds).
    """

    def __init__(
        self,
        delay_seconds: float = 30.0,
        succeed: bool = True,
    ):
        """
        Initialize the simulated gateway.

        Args:
            delay_seconds: Seconds between initiation and the outcome
            succeed: Whether simulated payments succeed or fail
        """
        self.delay_seconds = delay_seconds
        self.succeed = succeed
        self._timers: Dict[int, Tuple[str, Decimal, threading.Timer]] = {}
        self._lock = threading.Lock()

    def initiate(
        self,
        phone_number: str,
        amount: Decimal,
        booking_id: int,
        on_outcome: OutcomeCallback,
    ) -> None:
        logger.info(
            f"[M-Pesa] Initiating payment: booking_id={booking_id}, "
            f"amount={amount}, phone={phone_number}"
        )

        timer = threading.Timer(
            self.delay_seconds,
            self._resolve,
            args=(phone_number, booking_id, on_outcome),
        )
        timer.daemon = True

        with self._lock:
            if booking_id in self._timers:
                raise PaymentInitiationError(
                    f"Payment already in progress for booking {booking_id}",
                    booking_id=booking_id,
                    phone_number=phone_number,
                )
            self._timers[booking_id] = (phone_number, amount, timer)

        timer.start()

    def _resolve(self, phone_number: str, booking_id: int, on_outcome: OutcomeCallback) -> None:
        with self._lock:
            self._timers.pop(booking_id, None)

        if self.succeed:
            outcome = PaymentOutcome(
                phone_number=phone_number,
                booking_id=booking_id,
                status=BookingStatus.PAID,
                transaction_ref=f"MP{int(time.time() * 1000)}",
            )
        else:
            outcome = PaymentOutcome(
                phone_number=phone_number,
                booking_id=booking_id,
                status=BookingStatus.FAILED,
            )

        logger.info(
            f"[M-Pesa] Simulated payment {outcome.status.value} for booking {booking_id}"
        )
        _deliver(on_outcome, outcome)

    def shutdown(self) -> None:
        with self._lock:
            pending = list(self._timers.items())
            self._timers.clear()
        for booking_id, (phone_number, amount, timer) in pending:
            timer.cancel()
            _report_dropped(phone_number, booking_id, amount)
        if pending:
            logger.warning(f"[M-Pesa] Cancelled {len(pending)} pending simulated payment(s)")


class CallbackPaymentGateway(PaymentGateway):
    """
    Gateway whose outcomes are delivered by the provider's callback.

    ``initiate`` only records the pending payment; ``resolve`` is called when
    the provider reports back and runs the stored callback once.
    """

    def __init__(self):
        self._pending: Dict[int, Tuple[str, Decimal, OutcomeCallback]] = {}
        self._lock = threading.Lock()

    def initiate(
        self,
        phone_number: str,
        amount: Decimal,
        booking_id: int,
        on_outcome: OutcomeCallback,
    ) -> None:
        with self._lock:
            if booking_id in self._pending:
                raise PaymentInitiationError(
                    f"Payment already in progress for booking {booking_id}",
                    booking_id=booking_id,
                    phone_number=phone_number,
                )
            self._pending[booking_id] = (phone_number, amount, on_outcome)

        logger.info(
            f"Payment requested: booking_id={booking_id}, amount={amount}, phone={phone_number}"
        )

    def resolve(
        self,
        booking_id: int,
        succeeded: bool,
        transaction_ref: Optional[str] = None,
    ) -> bool:
        """
        Deliver the provider's outcome for a booking.

        Args:
            booking_id: Booking the callback refers to
            succeeded: Whether the payment went through
            transaction_ref: Provider receipt number

        Returns:
            False if the booking has no pending payment (unknown or already resolved)
        """
        with self._lock:
            entry = self._pending.pop(booking_id, None)

        if entry is None:
            logger.warning(f"Payment callback for unknown or resolved booking {booking_id}")
            return False

        phone_number, _amount, on_outcome = entry
        outcome = PaymentOutcome(
            phone_number=phone_number,
            booking_id=booking_id,
            status=BookingStatus.PAID if succeeded else BookingStatus.FAILED,
            transaction_ref=transaction_ref if succeeded else None,
        )
        _deliver(on_outcome, outcome)
        return True

    def pending_bookings(self) -> List[int]:
        """Booking ids still waiting for a callback."""
        with self._lock:
            return list(self._pending)

    def shutdown(self) -> None:
        with self._lock:
            pending = list(self._pending.items())
            self._pending.clear()
        for booking_id, (phone_number, amount, _on_outcome) in pending:
            _report_dropped(phone_number, booking_id, amount)
        if pending:
            logger.warning(f"Dropped {len(pending)} payment(s) still waiting for a callback")
