"""
Unit tests for outbound WhatsApp delivery.

Tests use a mocked Twilio client; nothing leaves the process.
"""
from unittest.mock import MagicMock, patch

import pytest
from twilio.base.exceptions import TwilioRestException

from error_handling.exceptions import MessageDeliveryError
from notifications.whatsapp import (
    LoggingNotifier,
    PhoneValidationError,
    TwilioWhatsAppNotifier,
    format_phone_number,
    to_whatsapp_address,
)


@pytest.fixture(autouse=True)
def no_retry_wait():
    """Skip tenacity backoff between Twilio attempts."""
    with patch("tenacity.nap.time.sleep"):
        yield


@pytest.fixture
def twilio_client():
    client = MagicMock()
    client.messages.create.return_value = MagicMock(sid="SM123")
    return client


@pytest.fixture
def twilio_notifier(twilio_client):
    return TwilioWhatsAppNotifier("ACxxx", "token", "+14155238886", client=twilio_client)


class TestPhoneFormatting:
    """Test phone number normalization."""

    @pytest.mark.parametrize("raw", [
        "254712345678",
        "+254712345678",
        "+254 712 345 678",
        "whatsapp:+254712345678",
        "254-712-345-678",
    ])
    def test_normalizes_to_e164(self, raw):
        assert format_phone_number(raw) == "+254712345678"

    @pytest.mark.parametrize("raw", ["12345", "1234567890123456", "not a number"])
    def test_rejects_bad_lengths(self, raw):
        with pytest.raises(PhoneValidationError):
            format_phone_number(raw)

    def test_whatsapp_address(self):
        assert to_whatsapp_address("254712345678") == "whatsapp:+254712345678"


class TestTwilioWhatsAppNotifier:
    """Test delivery through the Twilio client."""

    def test_send_success(self, twilio_notifier, twilio_client):
        assert twilio_notifier.send("254712345678", "Hello") is True

        twilio_client.messages.create.assert_called_once_with(
            to="whatsapp:+254712345678",
            from_="whatsapp:+14155238886",
            body="Hello",
        )

    def test_deliver_returns_sid(self, twilio_notifier):
        assert twilio_notifier.deliver("254712345678", "Hello") == "SM123"

    def test_api_error_is_retried_then_reported(self, twilio_notifier, twilio_client):
        twilio_client.messages.create.side_effect = TwilioRestException(
            status=400, uri="/Messages", msg="Invalid To", code=21211
        )

        assert twilio_notifier.send("254712345678", "Hello") is False
        assert twilio_client.messages.create.call_count == 3

    def test_deliver_raises_delivery_error_with_code(self, twilio_notifier, twilio_client):
        twilio_client.messages.create.side_effect = TwilioRestException(
            status=400, uri="/Messages", msg="Invalid To", code=21211
        )

        with pytest.raises(MessageDeliveryError) as exc_info:
            twilio_notifier.deliver("254712345678", "Hello")

        assert exc_info.value.error_code == "21211"
        assert exc_info.value.recipient == "254712345678"

    def test_transient_failure_then_success(self, twilio_notifier, twilio_client):
        twilio_client.messages.create.side_effect = [
            Exception("Connection reset by peer"),
            MagicMock(sid="SM456"),
        ]

        assert twilio_notifier.deliver("254712345678", "Hello") == "SM456"

    def test_invalid_recipient_is_not_sent(self, twilio_notifier, twilio_client):
        assert twilio_notifier.send("123", "Hello") is False
        twilio_client.messages.create.assert_not_called()


class TestLoggingNotifier:
    """Test the local development notifier."""

    def test_always_succeeds(self):
        assert LoggingNotifier().send("254712345678", "Hello") is True
