"""
Pydantic models for data validation and serialization.

Field aliases (camelCase) are the names stored inside conversation context
JSON; they must not change, or conversations resumed after a restart would no
longer deserialize.
"""
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, ConfigDict, field_validator


class BookingStatus(str, Enum):
    """Payment status of a booking in the ledger."""

    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    CANCELLED = "cancelled"

    def __str__(self) -> str:
        return self.value


class HotelInfo(BaseModel):
    """
    Hotel as returned by the catalog and stored in conversation context.
    """
    id: int
    name: str
    location: str
    price_per_night: Decimal = Field(..., gt=0, description="Price per night")
    amenities: List[str] = Field(default_factory=list)

    @field_validator("amenities", mode="before")
    @classmethod
    def default_amenities(cls, v):
        """Treat a NULL amenities column as an empty list."""
        return v or []

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "id": 1,
                "name": "Sarova Stanley",
                "location": "Nairobi",
                "price_per_night": "12000.00",
                "amenities": ["WiFi", "Pool", "Breakfast"]
            }
        }
    )


class BookingDetails(BaseModel):
    """
    Check-in/check-out dates and guest count parsed from a chat message.

    Dates stay as the raw DD/MM/YYYY strings the user typed; they are checked
    when the number of nights is calculated.
    """
    check_in: Optional[str] = Field(default=None, alias="checkIn")
    check_out: Optional[str] = Field(default=None, alias="checkOut")
    guests: Optional[int] = None
    valid: bool = False

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "checkIn": "15/08/2024",
                "checkOut": "17/08/2024",
                "guests": 2,
                "valid": True
            }
        }
    )


class BookingCreate(BaseModel):
    """
    Pydantic model for validating a booking before it is written to the ledger.
    """
    phone_number: str = Field(..., min_length=1, max_length=50)
    hotel_id: int
    check_in: date
    check_out: date
    guests: int = Field(..., ge=1)
    total_amount: Decimal = Field(..., gt=0)

    @field_validator("check_out")
    @classmethod
    def validate_check_out_after_check_in(cls, v: date, info) -> date:
        """Validate that the stay covers at least one night."""
        check_in = info.data.get("check_in")
        if check_in is not None and v <= check_in:
            raise ValueError("Check-out date must be after check-in date")
        return v


class BookingRecord(BaseModel):
    """
    Booking as read back from the ledger.
    """
    id: int
    phone_number: str
    hotel_id: int
    check_in: date
    check_out: date
    guests: int
    total_amount: Decimal
    status: BookingStatus
    transaction_ref: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ConversationRecord(BaseModel):
    """
    Conversation row as read from the store. ``context`` is the raw JSON text;
    it is decoded per state by ``conversation.context.load_context``.
    """
    phone_number: str
    state: str
    context: Optional[str] = None
    last_activity: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
