"""
Tests for settings, the per-phone lock registry, message formatting and
error handling helpers.
"""
import threading
import time
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from config import Settings, get_settings, reset_settings
from conversation.locks import PhoneLockRegistry
from conversation.messages import format_amount
from error_handling.error_messages import (
    CATALOG_APOLOGY,
    GENERIC_APOLOGY,
    get_error_message,
)
from error_handling.exceptions import (
    CatalogError,
    DatabaseConnectionError,
    PaymentInitiationError,
)
from error_handling.handlers import retry_on_db_error, translate_db_errors


class TestSettings:
    """Test environment-driven configuration."""

    @pytest.fixture(autouse=True)
    def fresh_settings(self):
        reset_settings()
        yield
        reset_settings()

    def test_defaults(self, monkeypatch):
        for name in ("DATABASE_URL", "TWILIO_ACCOUNT_SID", "TWILIO_AUTH_TOKEN", "TWILIO_WHATSAPP_NUMBER"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings(_env_file=None)

        assert settings.database_url == "sqlite:///hotel_booking.db"
        assert settings.payment_simulation_delay_seconds == 30.0
        assert settings.catalog_result_limit == 10
        assert settings.currency == "KSh"
        assert settings.twilio_configured is False

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "sqlite:///other.db")
        monkeypatch.setenv("PAYMENT_SIMULATION_DELAY_SECONDS", "1.5")

        settings = get_settings()

        assert settings.database_url == "sqlite:///other.db"
        assert settings.payment_simulation_delay_seconds == 1.5
        assert get_settings() is settings

    def test_catalog_limit_is_capped(self, monkeypatch):
        monkeypatch.setenv("CATALOG_RESULT_LIMIT", "50")

        assert Settings(_env_file=None).catalog_result_limit == 10

    def test_twilio_configured_needs_all_three(self, monkeypatch):
        monkeypatch.setenv("TWILIO_ACCOUNT_SID", "ACxxx")
        monkeypatch.setenv("TWILIO_AUTH_TOKEN", "token")
        monkeypatch.delenv("TWILIO_WHATSAPP_NUMBER", raising=False)

        assert Settings(_env_file=None).twilio_configured is False

        monkeypatch.setenv("TWILIO_WHATSAPP_NUMBER", "+14155238886")
        assert Settings(_env_file=None).twilio_configured is True


class TestPhoneLockRegistry:
    """Test per-phone serialization."""

    def test_same_phone_is_serialized(self):
        locks = PhoneLockRegistry()
        inside = []
        overlap = []

        def worker():
            with locks.hold("254700000001"):
                if inside:
                    overlap.append(True)
                inside.append(True)
                time.sleep(0.01)
                inside.pop()

        threads = [threading.Thread(target=worker) for _ in range(5)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(5)

        assert overlap == []

    def test_different_phones_do_not_block(self):
        locks = PhoneLockRegistry()
        entered = threading.Event()

        def other():
            with locks.hold("254700000002"):
                entered.set()

        with locks.hold("254700000001"):
            thread = threading.Thread(target=other)
            thread.start()
            assert entered.wait(2)
            thread.join(2)

    def test_entries_are_released(self):
        locks = PhoneLockRegistry()

        with locks.hold("254700000001"):
            assert len(locks) == 1

        assert len(locks) == 0

    def test_released_on_error(self):
        locks = PhoneLockRegistry()

        with pytest.raises(ValueError):
            with locks.hold("254700000001"):
                raise ValueError("boom")

        assert len(locks) == 0


class TestFormatAmount:
    """Test price formatting."""

    def test_whole_amount(self):
        assert format_amount(Decimal("30000.00")) == "KSh 30,000"

    def test_fractional_amount(self):
        assert format_amount(Decimal("1250.5")) == "KSh 1,250.50"

    def test_currency_label(self):
        assert format_amount(Decimal("10"), "USD") == "USD 10"


class TestErrorHandling:
    """Test error messages, retries and error translation."""

    def test_catalog_error_message(self):
        assert get_error_message(CatalogError("boom")) == CATALOG_APOLOGY

    def test_database_error_message(self):
        assert get_error_message(DatabaseConnectionError("down")) == GENERIC_APOLOGY

    def test_payment_error_message_mentions_booking(self):
        message = get_error_message(PaymentInitiationError("rejected", booking_id=12))

        assert "booking 12" in message

    def test_unknown_error_gets_generic_message(self):
        assert get_error_message(RuntimeError("boom")) == GENERIC_APOLOGY

    def test_transient_error_is_retried(self):
        calls = []

        @retry_on_db_error(max_attempts=3, min_wait=0, max_wait=0)
        def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise OperationalError("SELECT", {}, Exception("database is locked"))
            return "ok"

        assert flaky() == "ok"
        assert len(calls) == 3

    def test_exhausted_retries_become_connection_error(self):
        @translate_db_errors("probe")
        @retry_on_db_error(max_attempts=2, min_wait=0, max_wait=0)
        def always_down():
            raise OperationalError("SELECT", {}, Exception("database is locked"))

        with pytest.raises(DatabaseConnectionError) as exc_info:
            always_down()

        assert exc_info.value.context["operation"] == "probe"
        assert isinstance(exc_info.value.original_error, OperationalError)
