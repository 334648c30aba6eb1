"""
HotelCatalog - read-only hotel search by location or name.
"""
from typing import List

from loguru import logger
from sqlalchemy import func

from config import MAX_CATALOG_RESULTS
from models.database import Database, Hotel
from models.schemas import HotelInfo
from error_handling.exceptions import CatalogError
from error_handling.handlers import retry_on_db_error, translate_db_errors


def _like_pattern(text: str) -> str:
    escaped = text.lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class HotelCatalog:
    """
    Case-insensitive substring search over the hotels table.

    Results are ordered by hotel id and never exceed ten entries. Hotels
    without a positive nightly price cannot be booked and are left out.
    """

    def __init__(self, database: Database, limit: int = MAX_CATALOG_RESULTS):
        """
        Initialize the catalog.

        Args:
            database: Database handle
            limit: Maximum results per search (capped at 10)
        """
        self.database = database
        self.limit = max(1, min(limit, MAX_CATALOG_RESULTS))

    def _search(self, column, text: str) -> List[HotelInfo]:
        text = (text or "").strip()
        if not text:
            return []

        with self.database.session() as session:
            rows = (
                session.query(Hotel)
                .filter(func.lower(column).like(_like_pattern(text), escape="\\"))
                .filter(Hotel.price_per_night > 0)
                .order_by(Hotel.id)
                .limit(self.limit)
                .all()
            )
            return [HotelInfo.model_validate(row) for row in rows]

    @translate_db_errors("search_by_location", error_class=CatalogError)
    @retry_on_db_error()
    def by_location(self, location: str) -> List[HotelInfo]:
        """
        Hotels whose location contains ``location``.

        Args:
            location: Location name or fragment, any case

        Returns:
            Up to ten hotels
        """
        hotels = self._search(Hotel.location, location)
        logger.info(f"Catalog location search {location!r}: {len(hotels)} result(s)")
        return hotels

    @translate_db_errors("search_by_name", error_class=CatalogError)
    @retry_on_db_error()
    def by_name(self, name: str) -> List[HotelInfo]:
        """
        Hotels whose name contains ``name``.

        Args:
            name: Hotel name or fragment, any case

        Returns:
            Up to ten hotels
        """
        hotels = self._search(Hotel.name, name)
        logger.info(f"Catalog name search {name!r}: {len(hotels)} result(s)")
        return hotels
