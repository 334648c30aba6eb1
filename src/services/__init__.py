"""
Services package - persistence collaborators and the payment gateway.
"""
from .conversation_store import ConversationStore
from .catalog import HotelCatalog
from .booking_service import BookingLedger
from .payment_gateway import (
    PaymentGateway,
    PaymentOutcome,
    SimulatedMpesaGateway,
    CallbackPaymentGateway,
)

__all__ = [
    "ConversationStore",
    "HotelCatalog",
    "BookingLedger",
    "PaymentGateway",
    "PaymentOutcome",
    "SimulatedMpesaGateway",
    "CallbackPaymentGateway",
]
