"""
Pytest configuration and shared fixtures.
"""
import sys
import threading
from decimal import Decimal
from pathlib import Path
from typing import Generator, List, Tuple

import pytest

# Add src directory to path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from models.database import Database, Hotel, init_db
from notifications.whatsapp import Notifier
from services.booking_service import BookingLedger
from services.catalog import HotelCatalog
from services.conversation_store import ConversationStore
from services.payment_gateway import CallbackPaymentGateway
from conversation.dialog_engine import DialogEngine

PHONE = "254712345678"

BOOKING_DETAILS = (
    "Check-in date: 15/08/2030\n"
    "Check-out date: 17/08/2030\n"
    "Number of guests: 2"
)


class RecordingNotifier(Notifier):
    """Notifier that keeps every message it is asked to send."""

    def __init__(self, succeed: bool = True):
        self.succeed = succeed
        self.sent: List[Tuple[str, str]] = []
        self._lock = threading.Lock()

    def send(self, phone_number: str, text: str) -> bool:
        with self._lock:
            self.sent.append((phone_number, text))
        return self.succeed

    def texts(self, phone_number: str = PHONE) -> List[str]:
        with self._lock:
            return [text for phone, text in self.sent if phone == phone_number]

    def clear(self) -> None:
        with self._lock:
            self.sent.clear()


@pytest.fixture(scope="function")
def database(tmp_path) -> Generator[Database, None, None]:
    """
    File-backed SQLite database; payment continuations run on other threads,
    which an in-memory database would not share.
    """
    db = init_db(f"sqlite:///{tmp_path / 'booking_test.db'}")
    db.create_tables()
    yield db
    db.drop_tables()
    db.dispose()


@pytest.fixture(scope="function")
def hotels(database: Database) -> List[int]:
    """
    Seed a small catalog and return the hotel ids in insertion order.
    """
    rows = [
        Hotel(name="Nairobi Serena Hotel", location="Nairobi",
              price_per_night=Decimal("15000"), amenities=["WiFi", "Pool"]),
        Hotel(name="Sarova Stanley", location="Nairobi",
              price_per_night=Decimal("12000"), amenities=["WiFi", "Gym"]),
        Hotel(name="Serena Beach Resort", location="Mombasa",
              price_per_night=Decimal("22000"), amenities=["Beach"]),
        Hotel(name="Acacia Premier Hotel", location="Kisumu",
              price_per_night=Decimal("9000"), amenities=None),
    ]
    with database.session() as session:
        session.add_all(rows)
        session.flush()
        ids = [row.id for row in rows]
    return ids


@pytest.fixture(scope="function")
def store(database: Database) -> ConversationStore:
    return ConversationStore(database)


@pytest.fixture(scope="function")
def catalog(database: Database) -> HotelCatalog:
    return HotelCatalog(database)


@pytest.fixture(scope="function")
def ledger(database: Database) -> BookingLedger:
    return BookingLedger(database)


@pytest.fixture(scope="function")
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture(scope="function")
def gateway() -> Generator[CallbackPaymentGateway, None, None]:
    gw = CallbackPaymentGateway()
    yield gw
    gw.shutdown()


@pytest.fixture(scope="function")
def engine(store, catalog, ledger, notifier, gateway, hotels) -> DialogEngine:
    """
    DialogEngine over the seeded catalog with a manually resolved gateway.
    """
    return DialogEngine(store, catalog, ledger, notifier, gateway)


def walk_to_payment(engine: DialogEngine, phone_number: str = PHONE) -> None:
    """Drive a fresh conversation to the booking summary for Nairobi Serena."""
    engine.handle_message(phone_number, "hi")
    engine.handle_message(phone_number, "1")
    engine.handle_message(phone_number, "1")
    engine.handle_message(phone_number, "1")
    engine.handle_message(phone_number, BOOKING_DETAILS)
