"""Reads Onestop rows and group tables from an invocation payload."""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from processor.errors import ErrorKind, SyncError
from processor.models import RichText, Row

logger = logging.getLogger(__name__)

EVENTS_TAB = 'Events'
GROUPS_TAB = 'Groups'
SUPERGROUPS_TAB = 'Supergroups'
MEMBERS_TAB = 'Members'
COUPLES_TAB = 'Couples'

RICH_TEXT_FIELDS = ['where', 'in_charge', 'helpers', 'food_lead', 'childcare', 'notes']


def parse_rich_text(cell: Any) -> RichText:
    """
    Convert a payload cell to RichText.

    Args:
        cell: Plain string, None, or a dict with value/link/strikethrough

    Returns:
        RichText for the cell
    """
    if cell is None:
        return RichText()
    if isinstance(cell, dict):
        return RichText(
            value=str(cell.get('value') or ''),
            link=cell.get('link') or None,
            strikethrough=bool(cell.get('strikethrough', False))
        )
    return RichText(value=str(cell))


def parse_datetime(value: str) -> datetime:
    # Accept the trailing Z that spreadsheet exports use for UTC
    if value.endswith('Z'):
        value = value[:-1] + '+00:00'
    return datetime.fromisoformat(value)


class PayloadScanner:
    """
    Source scanner over the 'tabs' section of an invocation event.

    The Events tab is a list of row objects; the Groups, Supergroups and
    Members tabs are cell matrices whose first row is a header.
    """

    def __init__(self, event: Dict[str, Any]):
        self.tabs = event.get('tabs') or {}

    def get_rows(self) -> List[Row]:
        """
        Parse the Events tab into rows.

        Cancelled (struck-through) rows and rows without a title are skipped,
        as are rows whose times cannot be parsed.

        Returns:
            List of Row objects in source order

        Raises:
            SyncError: TAB_NOT_FOUND if the Events tab is missing
        """
        rows = []

        for index, item in enumerate(self._get_tab(EVENTS_TAB)):
            try:
                row = self._parse_row(index, item)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Failed to parse event row {index}: {e}")
                continue

            if row is not None:
                rows.append(row)

        logger.info(f"Scanned {len(rows)} event rows")
        return rows

    def get_group_table(self) -> List[List[str]]:
        return self._get_tab(GROUPS_TAB)

    def get_supergroup_table(self) -> List[List[str]]:
        return self._get_tab(SUPERGROUPS_TAB)

    def get_member_table(self) -> List[List[str]]:
        return self._get_tab(MEMBERS_TAB)

    def get_couple_table(self) -> List[List[str]]:
        return self._get_tab(COUPLES_TAB)

    def _get_tab(self, name: str) -> list:
        if name not in self.tabs:
            raise SyncError(ErrorKind.TAB_NOT_FOUND, f"Tab not found: {name}")
        return self.tabs[name]

    def _parse_row(self, index: int, item: Dict[str, Any]) -> Optional[Row]:
        what = parse_rich_text(item.get('what'))
        if not what.value.strip():
            return None
        if what.strikethrough:
            logger.info(f"Skipping cancelled event: {what.value}")
            return None

        num_attendees = item.get('num_attendees')

        return Row(
            start_time=parse_datetime(item['start_time']),
            end_time=parse_datetime(item['end_time']),
            what=what,
            who=str(item.get('who') or ''),
            num_attendees=int(num_attendees) if num_attendees not in (None, '') else None,
            row_id=item.get('row_id') or None,
            source_ref=str(item.get('source_ref', index)),
            **{name: parse_rich_text(item.get(name)) for name in RICH_TEXT_FIELDS}
        )
