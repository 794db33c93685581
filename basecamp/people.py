"""Lookup of Basecamp person ids by name."""
import logging
import re
from typing import Dict, Optional

from basecamp.client import BasecampClient

logger = logging.getLogger(__name__)

PEOPLE_MAP_KEY = 'PEOPLE_MAP'
REMOVE_PARENTHESES_REGEX = re.compile(r'\(.*?\)')
REMOVE_EXTRA_WHITESPACE_REGEX = re.compile(r'\s+')
STAFF_REGEX = re.compile(r'\bstaff\b', re.IGNORECASE)


def normalize_person_name(raw_name: str) -> str:
    """
    Normalize a person name for lookups.

    Removes text in parentheses (e.g. a city like "Andrew Chan (Sd)") and
    the word "staff", collapses whitespace and lowercases.

    Args:
        raw_name: Name as written on the Onestop or in Basecamp

    Returns:
        Normalized name
    """
    without_parentheses = REMOVE_PARENTHESES_REGEX.sub('', raw_name)
    without_staff = STAFF_REGEX.sub('', without_parentheses)
    return REMOVE_EXTRA_WHITESPACE_REGEX.sub(' ', without_staff).strip().lower()


class PeopleDirectory:
    """Cache of normalized person name to Basecamp person id."""

    def __init__(self, client: BasecampClient, settings_store):
        self.client = client
        self.settings_store = settings_store
        self._people: Optional[Dict[str, str]] = None

    def populate(self) -> Dict[str, str]:
        """
        Fetch the project's people from Basecamp and persist the name map.

        Returns:
            Mapping of normalized person name to Basecamp person id
        """
        url = f"{self.client.account_url}/projects/{self.client.project_id}/people.json"
        people = self.client.get_paginated(url)

        people_map = {
            normalize_person_name(person['name']): str(person['id'])
            for person in people
        }

        self.settings_store.put(PEOPLE_MAP_KEY, people_map)
        self._people = people_map
        logger.info(f"Populated {len(people_map)} people from Basecamp")
        return people_map

    def invalidate(self) -> None:
        self._people = None

    def get_person_id(self, name: str) -> Optional[str]:
        """Return the Basecamp id for a person name, or None if unknown."""
        if self._people is None:
            stored = self.settings_store.get(PEOPLE_MAP_KEY)
            self._people = stored if stored is not None else self.populate()

        return self._people.get(normalize_person_name(name))
