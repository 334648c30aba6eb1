"""
BookingLedger - booking records and their payment status.

This service handles:
- Creating a pending booking when the user confirms
- Resolving the payment status exactly once (pending -> paid/failed)
- Reading bookings back for reconciliation and tests
"""
from datetime import date
from decimal import Decimal
from typing import Optional

from loguru import logger
from sqlalchemy import update

from models.database import Booking, Database, utcnow
from models.schemas import BookingCreate, BookingRecord, BookingStatus, HotelInfo
from error_handling.exceptions import BookingNotFoundError
from error_handling.handlers import retry_on_db_error, translate_db_errors
from error_handling.logging_config import log_booking_event


class BookingLedger:
    """
    Service class that owns all writes to the bookings table.

    A booking is created pending and then mutated exactly once more, when its
    payment resolves. The status update is conditional on the row still being
    pending, so a duplicate or late payment outcome cannot overwrite it.
    """

    def __init__(self, database: Database):
        """
        Initialize the ledger.

        Args:
            database: Database handle
        """
        self.database = database

    @translate_db_errors("create_booking")
    @retry_on_db_error()
    def create(
        self,
        phone_number: str,
        hotel: HotelInfo,
        check_in: date,
        check_out: date,
        guests: int,
        total_amount: Decimal,
    ) -> int:
        """
        Create a booking with status pending.

        Args:
            phone_number: Customer phone number
            hotel: Hotel being booked
            check_in: Check-in date
            check_out: Check-out date
            guests: Number of guests
            total_amount: Amount due

        Returns:
            Id of the new booking

        Raises:
            pydantic.ValidationError: If the booking data is inconsistent
            DatabaseError: If the insert fails
        """
        booking_data = BookingCreate(
            phone_number=phone_number,
            hotel_id=hotel.id,
            check_in=check_in,
            check_out=check_out,
            guests=guests,
            total_amount=total_amount,
        )

        with self.database.session() as session:
            booking = Booking(
                phone_number=booking_data.phone_number,
                hotel_id=booking_data.hotel_id,
                check_in=booking_data.check_in,
                check_out=booking_data.check_out,
                guests=booking_data.guests,
                total_amount=booking_data.total_amount,
                status=BookingStatus.PENDING.value,
                created_at=utcnow(),
            )
            session.add(booking)
            session.flush()
            booking_id = booking.id

        log_booking_event(
            "CREATED",
            phone_number=phone_number,
            booking_id=booking_id,
            details={
                "hotel_id": hotel.id,
                "check_in": str(check_in),
                "check_out": str(check_out),
                "guests": guests,
                "total_amount": str(total_amount),
            },
        )
        return booking_id

    @translate_db_errors("update_booking_status")
    @retry_on_db_error()
    def update_status(
        self,
        booking_id: int,
        status: BookingStatus,
        transaction_ref: Optional[str] = None,
    ) -> bool:
        """
        Resolve a pending booking.

        Args:
            booking_id: Booking to update
            status: New status
            transaction_ref: Payment provider transaction reference, if any

        Returns:
            True if the booking was pending and is now updated, False if it
            had already been resolved

        Raises:
            BookingNotFoundError: If the booking does not exist
        """
        status = BookingStatus(status)

        with self.database.session() as session:
            result = session.execute(
                update(Booking)
                .where(Booking.id == booking_id)
                .where(Booking.status == BookingStatus.PENDING.value)
                .values(
                    status=status.value,
                    transaction_ref=transaction_ref,
                    updated_at=utcnow(),
                )
            )
            updated = result.rowcount == 1

            if not updated and session.get(Booking, booking_id) is None:
                raise BookingNotFoundError(booking_id)

        if updated:
            log_booking_event(
                status.value.upper(),
                booking_id=booking_id,
                details={"transaction_ref": transaction_ref},
            )
        else:
            logger.warning(
                f"Booking {booking_id} already resolved, ignoring status {status.value}"
            )
        return updated

    @translate_db_errors("get_booking")
    @retry_on_db_error()
    def get(self, booking_id: int) -> Optional[BookingRecord]:
        """
        Read a booking.

        Args:
            booking_id: Booking id

        Returns:
            BookingRecord, or None if not found
        """
        with self.database.session() as session:
            row = session.get(Booking, booking_id)
            if row is None:
                return None
            return BookingRecord.model_validate(row)
