"""Basecamp schedule entry operations."""
import logging
from typing import Optional

from basecamp.client import BasecampClient
from processor.errors import SyncError
from processor.models import ScheduleEntry, ScheduleEntryRequest

logger = logging.getLogger(__name__)


class ScheduleClient:
    """Creates, replaces and trashes entries in one Basecamp schedule."""

    def __init__(self, client: BasecampClient, schedule_id: str):
        self.client = client
        self.schedule_id = schedule_id

    def create_entry(self, request: ScheduleEntryRequest) -> Optional[ScheduleEntry]:
        """
        Create a schedule entry.

        Args:
            request: Schedule entry payload

        Returns:
            The created entry, or None if Basecamp rejected the request
        """
        logger.info(f"Creating new schedule entry: \"{request.summary}\"")
        url = f"{self.client.project_url}/schedules/{self.schedule_id}/entries.json"

        try:
            response = self.client.post(url, request.to_payload())
        except SyncError as e:
            if e.is_fatal:
                raise
            logger.error(f"Error creating schedule entry \"{request.summary}\": {e}")
            return None

        return ScheduleEntry(id=str(response['id']), url=response.get('app_url'))

    def update_entry(self, entry_id: str, request: ScheduleEntryRequest) -> None:
        """Replace a schedule entry."""
        logger.info(f"Updating schedule entry {entry_id}: \"{request.summary}\"")
        self.client.put(
            f"{self.client.project_url}/schedule_entries/{entry_id}.json",
            request.to_payload()
        )

    def delete_entry(self, entry_id: str) -> None:
        """Move a schedule entry to the trash."""
        logger.info(f"Deleting schedule entry {entry_id}")
        self.client.put(f"{self.client.project_url}/recordings/{entry_id}/status/trashed.json", {})
