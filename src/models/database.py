"""
SQLAlchemy database models and session management for the hotel booking agent.
"""
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Generator, Optional
from loguru import logger

from sqlalchemy import (
    create_engine,
    Column,
    Integer,
    String,
    Text,
    Date,
    DateTime,
    Enum,
    Index,
    Numeric,
    ForeignKey,
    CheckConstraint,
    JSON,
    event,
)
from sqlalchemy.orm import declarative_base, Session, sessionmaker
from sqlalchemy.engine import Engine

from error_handling.handlers import translate_db_errors
from error_handling.exceptions import DatabaseConnectionError

from .schemas import BookingStatus

# Create declarative base
Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp, as stored in DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Conversation(Base):
    """
    Conversation model holding the dialog state for one phone number.
    """
    __tablename__ = "conversations"

    phone_number = Column(String(50), primary_key=True)
    current_state = Column(String(32), nullable=False, default="welcome")
    context = Column(Text, nullable=False, default="{}")
    last_activity = Column(DateTime, nullable=False, default=utcnow)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    def __repr__(self) -> str:
        return (
            f"<Conversation(phone_number='{self.phone_number}', "
            f"current_state='{self.current_state}', last_activity={self.last_activity})>"
        )


class Hotel(Base):
    """
    Hotel model representing the catalog of bookable hotels.
    """
    __tablename__ = "hotels"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    location = Column(String(255), nullable=False)
    price_per_night = Column(Numeric(10, 2), nullable=False)
    # Ordered list of amenity names
    amenities = Column(JSON, nullable=True)

    __table_args__ = (
        CheckConstraint("price_per_night >= 0", name="ck_hotel_price_non_negative"),
        Index("ix_hotel_location", "location"),
        Index("ix_hotel_name", "name"),
    )

    def __repr__(self) -> str:
        return (
            f"<Hotel(id={self.id}, name='{self.name}', location='{self.location}', "
            f"price_per_night={self.price_per_night})>"
        )


class Booking(Base):
    """
    Booking model representing a hotel stay awaiting or holding payment.
    """
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    phone_number = Column(String(50), nullable=False)
    hotel_id = Column(Integer, ForeignKey("hotels.id"), nullable=False)
    check_in = Column(Date, nullable=False)
    check_out = Column(Date, nullable=False)
    guests = Column(Integer, nullable=False)
    total_amount = Column(Numeric(12, 2), nullable=False)
    status = Column(
        Enum(*[s.value for s in BookingStatus], name="booking_status"),
        nullable=False,
        default=BookingStatus.PENDING.value,
    )
    transaction_ref = Column(String(64), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=True)

    __table_args__ = (
        CheckConstraint("guests >= 1", name="ck_booking_guests_positive"),
        CheckConstraint("check_out > check_in", name="ck_booking_stay_length"),
        Index("ix_booking_phone", "phone_number"),
    )

    def __repr__(self) -> str:
        return (
            f"<Booking(id={self.id}, phone_number='{self.phone_number}', hotel_id={self.hotel_id}, "
            f"check_in={self.check_in}, check_out={self.check_out}, "
            f"total_amount={self.total_amount}, status='{self.status}')>"
        )


class Database:
    """
    Explicit handle on the engine and session factory.

    Passed into every store instead of living in a module-level global, so
    tests and the app can run against different databases side by side.
    """

    def __init__(self, engine: Engine):
        self.engine = engine
        self.session_factory = sessionmaker(
            bind=engine,
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
        )

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """
        Context manager for database sessions with automatic cleanup.

        Yields:
            SQLAlchemy Session instance

        Example:
            with database.session() as session:
                hotel = session.query(Hotel).first()
        """
        session = self.session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    @translate_db_errors("create_tables", error_class=DatabaseConnectionError)
    def create_tables(self) -> None:
        """Create all tables in the database."""
        Base.metadata.create_all(bind=self.engine)

    def drop_tables(self) -> None:
        """Drop all tables in the database."""
        Base.metadata.drop_all(bind=self.engine)

    def dispose(self) -> None:
        """Close all pooled connections."""
        self.engine.dispose()


def init_db(database_url: str, echo: bool = False, engine_options: Optional[dict] = None) -> Database:
    """
    Initialize database engine and session factory.

    Args:
        database_url: SQLAlchemy database connection string
        echo: Log every SQL statement
        engine_options: Extra keyword arguments for ``create_engine``

    Returns:
        Database handle
    """
    options = dict(engine_options or {})

    if database_url.startswith("sqlite"):
        # Payment continuations run on timer threads
        options.setdefault("connect_args", {"check_same_thread": False})
    else:
        options.setdefault("pool_pre_ping", True)
        options.setdefault("pool_size", 5)
        options.setdefault("max_overflow", 10)

    engine = create_engine(database_url, echo=echo, **options)
    setup_connection_events(engine)

    logger.info(f"Database engine created for {engine.url.render_as_string(hide_password=True)}")
    return Database(engine)


def setup_connection_events(engine: Engine) -> None:
    """
    Set up connection pool event handlers.

    Args:
        engine: SQLAlchemy engine instance
    """

    @event.listens_for(engine, "connect")
    def receive_connect(dbapi_conn, connection_record):
        """Log new connections; SQLite also needs foreign keys switched on."""
        if engine.dialect.name == "sqlite":
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()
        logger.debug("Database connection established")

    @event.listens_for(engine, "close")
    def receive_close(dbapi_conn, connection_record):
        """Log connection closures."""
        logger.debug("Database connection closed")
