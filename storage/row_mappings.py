"""Persistence of per-row Basecamp mappings."""
import logging
from typing import Dict, Optional

from processor.models import RowBasecampMapping

logger = logging.getLogger(__name__)


class RowMappingStore:
    """Typed view over a property store holding RowBasecampMapping values."""

    def __init__(self, property_store):
        self.property_store = property_store

    def get(self, row_id: str) -> Optional[RowBasecampMapping]:
        data = self.property_store.get(row_id)
        if data is None:
            return None
        return RowBasecampMapping.from_dict(data)

    def get_all(self) -> Dict[str, RowBasecampMapping]:
        """
        Retrieve every saved mapping.

        Returns:
            Dictionary mapping row id to RowBasecampMapping; malformed
            entries are skipped
        """
        mappings = {}

        for row_id, data in self.property_store.get_all().items():
            try:
                mappings[row_id] = RowBasecampMapping.from_dict(data)
            except (KeyError, TypeError, AttributeError) as e:
                logger.error(f"Failed to convert saved mapping for row {row_id}, skipping it: {e}")

        return mappings

    def put(self, row_id: str, mapping: RowBasecampMapping) -> None:
        self.property_store.put(row_id, mapping.to_dict())

    def delete(self, row_id: str) -> None:
        self.property_store.delete(row_id)
