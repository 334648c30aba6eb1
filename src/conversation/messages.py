"""
Chat message templates for the booking dialog.
"""
from decimal import Decimal
from typing import List

from models.schemas import BookingDetails, HotelInfo

LOCATIONS = ["Nairobi", "Mombasa", "Kisumu", "Nakuru", "Eldoret"]


def format_amount(amount: Decimal, currency: str = "KSh") -> str:
    """Format a price as ``KSh 12,000`` (cents shown only when present)."""
    amount = Decimal(amount)
    if amount == amount.to_integral_value():
        return f"{currency} {amount:,.0f}"
    return f"{currency} {amount:,.2f}"


def welcome_menu() -> str:
    return (
        "🏨 Welcome to Hotel Booking Bot!\n\n"
        "I can help you find and book hotels in Kenya.\n\n"
        "Please choose an option:\n"
        "1. 📍 Browse hotels by location\n"
        "2. 🔍 Search hotels by name\n"
        "3. 💬 Speak to customer service\n\n"
        "Reply with the number of your choice."
    )


def location_prompt() -> str:
    options = "\n".join(f"{i}. {name}" for i, name in enumerate(LOCATIONS, start=1))
    return (
        "📍 Select a location:\n\n"
        f"{options}\n\n"
        "Reply with the number or type your preferred location."
    )


def hotel_name_prompt() -> str:
    return "🔍 Please type the hotel name you're looking for:"


def customer_service_handoff() -> str:
    return "💬 Connecting you to customer service... Please wait."


def browse_reprompt() -> str:
    return "Please reply with 1, 2, or 3 to continue."


def _search_label(step: str, query: str) -> str:
    if step == "location":
        return f"in {query.title()}"
    return f'matching "{query}"'


def hotel_list(hotels: List[HotelInfo], step: str, query: str, currency: str = "KSh") -> str:
    """
    Numbered hotel list; the user answers with the 1-based number.
    """
    lines = [f"🏨 Hotels {_search_label(step, query)}:", ""]

    for index, hotel in enumerate(hotels, start=1):
        amenities = ", ".join(hotel.amenities) if hotel.amenities else "Standard amenities"
        lines.append(f"{index}. {hotel.name}")
        lines.append(f"    📍 {hotel.location}")
        lines.append(f"    💰 {format_amount(hotel.price_per_night, currency)}/night")
        lines.append(f"    ⭐ {amenities}")
        lines.append("")

    lines.append("Reply with the hotel number to continue booking.")
    return "\n".join(lines)


def no_hotels_found(step: str, query: str) -> str:
    label = f"in {query}" if step == "location" else f'matching "{query}"'
    return (
        f"Sorry, no hotels found {label}. "
        f"Please try another {step} or contact customer service. "
        "Send any message to see the menu again."
    )


def start_over() -> str:
    return (
        "Sorry, I lost track of where we were. "
        "Send any message to start a new search."
    )


def booking_details_prompt(hotel: HotelInfo, currency: str = "KSh") -> str:
    return (
        f"🏨 You selected: *{hotel.name}*\n"
        f"💰 Price: {format_amount(hotel.price_per_night, currency)}/night\n\n"
        "Please provide your booking details in this format:\n"
        "Check-in date: DD/MM/YYYY\n"
        "Check-out date: DD/MM/YYYY\n"
        "Number of guests: X\n\n"
        "Example:\n"
        "Check-in date: 15/08/2024\n"
        "Check-out date: 17/08/2024\n"
        "Number of guests: 2"
    )


def invalid_hotel_number(count: int) -> str:
    return f"Please select a valid hotel number from the list (1-{count})."


def invalid_stay_dates() -> str:
    return "Check-out date must be after check-in date. Please provide valid dates in DD/MM/YYYY format."


def unparsed_booking_details() -> str:
    return (
        "I could not understand the booking details. "
        "Please provide them in the *exact format* shown above."
    )


def booking_summary(
    hotel: HotelInfo,
    details: BookingDetails,
    nights: int,
    total_amount: Decimal,
    currency: str = "KSh",
) -> str:
    return (
        "📋 Booking Summary:\n\n"
        f"🏨 Hotel: *{hotel.name}*\n"
        f"📅 Check-in: {details.check_in}\n"
        f"📅 Check-out: {details.check_out}\n"
        f"👥 Guests: {details.guests}\n"
        f"🌙 Nights: {nights}\n"
        f"💰 Total: {format_amount(total_amount, currency)}\n\n"
        "Reply 'CONFIRM' to proceed to payment or 'CANCEL' to start over."
    )


def payment_instructions(
    total_amount: Decimal,
    booking_id: int,
    phone_number: str,
    currency: str = "KSh",
) -> str:
    return (
        "💳 Payment Required:\n\n"
        f"Amount: {format_amount(total_amount, currency)}\n"
        f"Booking ID: {booking_id}\n\n"
        "You will receive an M-Pesa STK push shortly. "
        "Please enter your M-Pesa PIN to complete the payment.\n\n"
        f"The payment request is being sent to {phone_number}..."
    )


def payment_already_pending(booking_id: int) -> str:
    return (
        f"⏳ Payment for booking {booking_id} is already in progress. "
        "Please complete it on your phone, or reply *CANCEL* to start over."
    )


def payment_reprompt() -> str:
    return "Please reply *CONFIRM* to proceed with payment or *CANCEL* to cancel booking."


def booking_cancelled() -> str:
    return "Booking cancelled. Feel free to start a new search anytime!"


def payment_successful(booking_id: int, transaction_ref: str) -> str:
    return (
        "✅ Payment successful!\n\n"
        "Your booking is confirmed.\n"
        f"Booking ID: {booking_id}\n"
        f"Transaction ID: {transaction_ref}\n\n"
        "You will receive a confirmation email shortly. "
        "Thank you for choosing our service! 🏨"
    )


def payment_failed(booking_id: int) -> str:
    return (
        f"❌ Payment for booking {booking_id} was not completed.\n\n"
        "Reply *CONFIRM* to try again or *CANCEL* to start over."
    )
