#!/usr/bin/env python3
"""
Database seeding script for the hotel booking chat agent.

This script:
- Creates the conversations, hotels and bookings tables
- Seeds a catalog of hotels across the five listed Kenyan locations
- Can be run multiple times (idempotent: hotels are matched by name and location)

Usage:
    python scripts/seed_database.py [--reset]

Options:
    --reset     Clear existing bookings, conversations and hotels before seeding
"""
import sys
import argparse
from decimal import Decimal
from pathlib import Path
from typing import List

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from config import get_settings
from models.database import (
    Database,
    init_db,
    Booking,
    Conversation,
    Hotel,
)


SAMPLE_HOTELS = [
    {
        "name": "Nairobi Serena Hotel",
        "location": "Nairobi",
        "price_per_night": Decimal("18500"),
        "amenities": ["WiFi", "Pool", "Spa", "Restaurant"],
    },
    {
        "name": "Sarova Stanley",
        "location": "Nairobi",
        "price_per_night": Decimal("15000"),
        "amenities": ["WiFi", "Gym", "Restaurant"],
    },
    {
        "name": "Ibis Styles Nairobi Westlands",
        "location": "Nairobi",
        "price_per_night": Decimal("8500"),
        "amenities": ["WiFi", "Breakfast"],
    },
    {
        "name": "Serena Beach Resort",
        "location": "Mombasa",
        "price_per_night": Decimal("22000"),
        "amenities": ["Beach", "Pool", "Spa", "WiFi"],
    },
    {
        "name": "Voyager Beach Resort",
        "location": "Mombasa",
        "price_per_night": Decimal("16000"),
        "amenities": ["Beach", "Pool", "All-inclusive"],
    },
    {
        "name": "Acacia Premier Hotel",
        "location": "Kisumu",
        "price_per_night": Decimal("12000"),
        "amenities": ["WiFi", "Pool", "Lake view"],
    },
    {
        "name": "Sovereign Hotel",
        "location": "Kisumu",
        "price_per_night": Decimal("7500"),
        "amenities": ["WiFi", "Parking"],
    },
    {
        "name": "Sarova Woodlands",
        "location": "Nakuru",
        "price_per_night": Decimal("11000"),
        "amenities": ["WiFi", "Pool", "Garden"],
    },
    {
        "name": "Eka Hotel Eldoret",
        "location": "Eldoret",
        "price_per_night": Decimal("9000"),
        "amenities": ["WiFi", "Gym", "Restaurant"],
    },
    {
        "name": "Boma Inn Eldoret",
        "location": "Eldoret",
        "price_per_night": Decimal("8000"),
        "amenities": None,
    },
]


def seed_hotels(database: Database) -> List[int]:
    """
    Insert the sample hotels that are not in the catalog yet.

    Args:
        database: Open database handle

    Returns:
        Ids of all sample hotels (existing and new)
    """
    print("\nSeeding hotel catalog...")

    hotel_ids = []
    with database.session() as session:
        for data in SAMPLE_HOTELS:
            existing = session.query(Hotel).filter_by(
                name=data["name"],
                location=data["location"],
            ).first()

            if existing:
                print(f"  ⊙ {data['name']} ({data['location']}) already exists")
                hotel_ids.append(existing.id)
                continue

            hotel = Hotel(**data)
            session.add(hotel)
            session.flush()
            hotel_ids.append(hotel.id)
            print(f"  ✓ Added {data['name']} ({data['location']}) at KSh {data['price_per_night']:,}/night")

    print(f"\nTotal sample hotels: {len(hotel_ids)}")
    return hotel_ids


def reset_database(database: Database) -> None:
    """
    Clear all data from the database.

    Args:
        database: Open database handle
    """
    print("\n⚠️  Resetting database...")

    # Delete in correct order (respecting foreign keys)
    with database.session() as session:
        booking_count = session.query(Booking).delete()
        print(f"  ✓ Deleted {booking_count} bookings")

        conversation_count = session.query(Conversation).delete()
        print(f"  ✓ Deleted {conversation_count} conversations")

        hotel_count = session.query(Hotel).delete()
        print(f"  ✓ Deleted {hotel_count} hotels")

    print("  ✓ Database reset complete")


def main():
    """Main seeding function."""
    parser = argparse.ArgumentParser(
        description="Seed the hotel booking database with a sample catalog"
    )
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Clear existing data before seeding"
    )

    args = parser.parse_args()
    settings = get_settings()

    print("=" * 60)
    print("Hotel Booking Chat Agent - Database Seeding")
    print("=" * 60)

    database = None
    try:
        print(f"\nInitializing database connection ({settings.database_url})...")
        database = init_db(settings.database_url)
        database.create_tables()
        print("  ✓ Database initialized")

        if args.reset:
            reset_database(database)

        seed_hotels(database)

        print("\n" + "=" * 60)
        print("✓ Database seeding completed successfully!")
        print("=" * 60)

        return 0

    except Exception as e:
        print(f"\n✗ Error during seeding: {e}")
        import traceback
        traceback.print_exc()
        return 1

    finally:
        if database is not None:
            database.dispose()


if __name__ == "__main__":
    sys.exit(main())
