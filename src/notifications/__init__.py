"""
Notifications package for the hotel booking chat agent.

Provides outbound WhatsApp delivery and a logging fallback.
"""
from .whatsapp import (
    Notifier,
    LoggingNotifier,
    TwilioWhatsAppNotifier,
    PhoneValidationError,
    format_phone_number,
    to_whatsapp_address,
)

__all__ = [
    "Notifier",
    "LoggingNotifier",
    "TwilioWhatsAppNotifier",
    "PhoneValidationError",
    "format_phone_number",
    "to_whatsapp_address",
]
