"""
Wiring for the booking agent: database, collaborators, notifier, gateway.
"""
from contextlib import contextmanager
from typing import Generator, Optional

from loguru import logger

from config import Settings
from conversation.dialog_engine import DialogEngine
from error_handling.exceptions import ConfigurationError
from models.database import Database, init_db
from notifications.whatsapp import LoggingNotifier, Notifier, TwilioWhatsAppNotifier
from services.booking_service import BookingLedger
from services.catalog import HotelCatalog
from services.conversation_store import ConversationStore
from services.payment_gateway import PaymentGateway, SimulatedMpesaGateway
from .inbound import InboundMessageProcessor


def build_notifier(settings: Settings) -> Notifier:
    """
    Twilio WhatsApp when credentials are configured, logging otherwise.

    Raises:
        ConfigurationError: If only some of the Twilio settings are present
    """
    twilio_settings = {
        "TWILIO_ACCOUNT_SID": settings.twilio_account_sid,
        "TWILIO_AUTH_TOKEN": settings.twilio_auth_token,
        "TWILIO_WHATSAPP_NUMBER": settings.twilio_whatsapp_number,
    }
    missing = [key for key, value in twilio_settings.items() if not value]
    if missing and len(missing) < len(twilio_settings):
        raise ConfigurationError(
            f"Incomplete Twilio configuration, missing {', '.join(missing)}",
            config_key=missing[0],
        )

    if settings.twilio_configured:
        return TwilioWhatsAppNotifier(
            settings.twilio_account_sid,
            settings.twilio_auth_token,
            settings.twilio_whatsapp_number,
        )

    logger.warning("Twilio credentials not configured, replies will only be logged")
    return LoggingNotifier()


def build_engine(
    settings: Settings,
    database: Database,
    notifier: Optional[Notifier] = None,
    gateway: Optional[PaymentGateway] = None,
) -> DialogEngine:
    """
    Assemble a DialogEngine on top of ``database``.

    Args:
        settings: Application settings
        database: Open database handle
        notifier: Overrides the notifier chosen from settings
        gateway: Overrides the simulated M-Pesa gateway
    """
    return DialogEngine(
        store=ConversationStore(database),
        catalog=HotelCatalog(database, limit=settings.catalog_result_limit),
        ledger=BookingLedger(database),
        notifier=notifier or build_notifier(settings),
        gateway=gateway or SimulatedMpesaGateway(settings.payment_simulation_delay_seconds),
        currency=settings.currency,
    )


@contextmanager
def create_booking_agent(
    settings: Settings,
    notifier: Optional[Notifier] = None,
    gateway: Optional[PaymentGateway] = None,
) -> Generator[InboundMessageProcessor, None, None]:
    """
    Context manager for the booking agent lifecycle.

    Creates the tables if needed, yields the inbound processor, and on exit
    stops the payment gateway and disposes of the database engine.

    Usage:
        with create_booking_agent(get_settings()) as agent:
            agent.process("254712345678", "hi")
    """
    database = init_db(settings.database_url)
    database.create_tables()
    try:
        engine = build_engine(settings, database, notifier=notifier, gateway=gateway)
    except ConfigurationError:
        database.dispose()
        raise

    try:
        yield InboundMessageProcessor(engine)
    finally:
        engine.gateway.shutdown()
        database.dispose()
        logger.info("Booking agent shut down")
