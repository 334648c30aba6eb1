"""
Models package - SQLAlchemy ORM models and Pydantic schemas.
"""
from .database import (
    Base,
    Conversation,
    Hotel,
    Booking,
    Database,
    init_db,
    utcnow,
)

from .schemas import (
    BookingStatus,
    HotelInfo,
    BookingDetails,
    BookingCreate,
    BookingRecord,
    ConversationRecord,
)

__all__ = [
    # Database models
    "Base",
    "Conversation",
    "Hotel",
    "Booking",
    # Database utilities
    "Database",
    "init_db",
    "utcnow",
    # Pydantic schemas
    "BookingStatus",
    "HotelInfo",
    "BookingDetails",
    "BookingCreate",
    "BookingRecord",
    "ConversationRecord",
]
