"""
Outbound chat message delivery.

Provides the Notifier interface used by the dialog engine, a Twilio WhatsApp
implementation with retry logic, and a logging notifier for local runs.
Delivery failures are logged and reported as ``False``; they never raise into
the dialog.
"""
import re
from abc import ABC, abstractmethod
from typing import Optional

from loguru import logger
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)
from twilio.rest import Client
from twilio.base.exceptions import TwilioRestException

from error_handling.exceptions import MessageDeliveryError

WHATSAPP_PREFIX = "whatsapp:"


class PhoneValidationError(Exception):
    """Exception raised when phone number validation fails."""
    pass


def format_phone_number(phone: str) -> str:
    """
    Normalize a phone number to E.164 (+254712345678).

    WhatsApp delivers sender ids without the plus sign (254712345678); both
    forms are accepted, as are spaces, dashes and a ``whatsapp:`` prefix.

    Args:
        phone: Phone number in various formats

    Returns:
        Phone number in E.164 format

    Raises:
        PhoneValidationError: If the number has fewer than 8 or more than 15 digits

    Examples:
        >>> format_phone_number("254712345678")
        '+254712345678'
        >>> format_phone_number("whatsapp:+254 712 345 678")
        '+254712345678'
    """
    cleaned = phone.strip()
    if cleaned.lower().startswith(WHATSAPP_PREFIX):
        cleaned = cleaned[len(WHATSAPP_PREFIX):]

    digits_only = re.sub(r"\D", "", cleaned)

    if not 8 <= len(digits_only) <= 15:
        raise PhoneValidationError(
            f"Invalid phone number format: {phone}. "
            "Expected an international number with 8-15 digits"
        )

    return f"+{digits_only}"


def to_whatsapp_address(phone: str) -> str:
    """
    Build the Twilio WhatsApp address for a phone number.

    Args:
        phone: Phone number in any accepted format

    Returns:
        Address like ``whatsapp:+254712345678``
    """
    return f"{WHATSAPP_PREFIX}{format_phone_number(phone)}"


class Notifier(ABC):
    """Delivers a text message to a phone number."""

    @abstractmethod
    def send(self, phone_number: str, text: str) -> bool:
        """
        Send one message.

        Args:
            phone_number: Recipient
            text: Message body

        Returns:
            True if the provider accepted the message, False otherwise
        """


class LoggingNotifier(Notifier):
    """
    Notifier that only logs messages.

    Used when Twilio is not configured (local development, demos).
    """

    def send(self, phone_number: str, text: str) -> bool:
        logger.info(f"[outbound -> {phone_number}]\n{text}")
        return True


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    retry=retry_if_exception_type((TwilioRestException, ConnectionError)),
    reraise=True,
)
def _send_whatsapp_with_retry(
    client: Client,
    to: str,
    from_: str,
    body: str,
) -> str:
    """
    Internal function to send a WhatsApp message with the Twilio API (with retry decorator).

    Args:
        client: Twilio client instance
        to: Recipient WhatsApp address
        from_: Sender WhatsApp address
        body: Message body

    Returns:
        Message SID from Twilio

    Raises:
        TwilioRestException: If Twilio API call fails after retries
        ConnectionError: If network connectivity issues
    """
    try:
        message = client.messages.create(
            to=to,
            from_=from_,
            body=body
        )
        return message.sid

    except TwilioRestException as e:
        logger.error(f"Twilio API error (attempt will retry): {e.code} - {e.msg}")
        raise
    except Exception as e:
        if "connection" in str(e).lower() or "timeout" in str(e).lower():
            logger.error(f"Network connectivity error (attempt will retry): {str(e)}")
            raise ConnectionError(f"Network error: {str(e)}")
        raise


class TwilioWhatsAppNotifier(Notifier):
    """
    Sends chat replies over WhatsApp through Twilio.

    Example:
        notifier = TwilioWhatsAppNotifier(account_sid, auth_token, "+14155238886")
        notifier.send("254712345678", "Welcome!")
    """

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        from_number: str,
        client: Optional[Client] = None,
    ):
        """
        Initialize the notifier.

        Args:
            account_sid: Twilio account SID
            auth_token: Twilio auth token
            from_number: WhatsApp-enabled Twilio number
            client: Pre-built Twilio client (tests)
        """
        self.from_address = to_whatsapp_address(from_number)
        self.client = client or Client(account_sid, auth_token)
        logger.info("Twilio WhatsApp client initialized successfully")

    def deliver(self, phone_number: str, text: str) -> str:
        """
        Send a message and return its SID.

        Raises:
            MessageDeliveryError: If the number is invalid or Twilio rejects the message
        """
        try:
            to = to_whatsapp_address(phone_number)
        except PhoneValidationError as e:
            raise MessageDeliveryError(
                str(e),
                recipient=phone_number,
                original_error=e,
            ) from e

        try:
            return _send_whatsapp_with_retry(
                client=self.client,
                to=to,
                from_=self.from_address,
                body=text,
            )
        except TwilioRestException as e:
            raise MessageDeliveryError(
                f"Twilio API error: {e.code} - {e.msg}",
                error_code=str(e.code),
                recipient=phone_number,
                original_error=e,
            ) from e
        except ConnectionError as e:
            raise MessageDeliveryError(
                f"Network connectivity error: {str(e)}",
                recipient=phone_number,
                original_error=e,
            ) from e

    def send(self, phone_number: str, text: str) -> bool:
        try:
            message_sid = self.deliver(phone_number, text)
        except MessageDeliveryError as e:
            logger.error(
                f"WhatsApp send failed - Phone: {phone_number}, Error: {e.message}"
            )
            return False

        logger.info(f"WhatsApp message sent - Phone: {phone_number}, Message SID: {message_sid}")
        return True
