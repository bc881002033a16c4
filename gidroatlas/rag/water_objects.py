"""
Water Object Repository
=======================

Read-only access to the registry's water_objects table: the source
entities of the structured corpus.
"""

import logging
from typing import Callable, ContextManager, List, Optional
from uuid import UUID

from psycopg2.extras import RealDictCursor

from .models import WaterObject, ResourceType, WaterType

logger = logging.getLogger(__name__)


class WaterObjectRepository:
    """Lists water objects for indexing."""

    def __init__(self, connection_factory: Optional[Callable[[], ContextManager]] = None):
        if connection_factory is None:
            from ..db import get_connection
            connection_factory = get_connection
        self._connect = connection_factory

    def list_all(self) -> List[WaterObject]:
        with self._connect() as conn:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute("""
                    SELECT
                        id, name, region, resource_type, water_type,
                        fauna, technical_condition, passport_date,
                        latitude, longitude
                    FROM water_objects
                    ORDER BY name
                """)
                rows = cur.fetchall()

        objects = []
        for row in rows:
            try:
                objects.append(self._from_row(row))
            except ValueError as e:
                logger.warning(f"Skipping water object {row.get('id')}: {e}")
        return objects

    @staticmethod
    def _from_row(row) -> WaterObject:
        return WaterObject(
            id=UUID(str(row["id"])),
            name=row["name"],
            region=row["region"],
            resource_type=ResourceType.from_db(row["resource_type"]),
            water_type=WaterType.from_db(row["water_type"]),
            has_fauna=bool(row["fauna"]),
            technical_condition=int(row["technical_condition"]),
            passport_date=row["passport_date"],
            latitude=float(row["latitude"]),
            longitude=float(row["longitude"]),
        )
