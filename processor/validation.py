"""Checks that helper names on a row refer to known groups, aliases or people."""
import re
from typing import List

from basecamp.people import normalize_person_name
from processor.filters import remove_filters
from processor.groups import COMMA_DELIMITER, GroupDirectory, normalize_member_name
from processor.models import Row
from processor.role_requests import COLON_DELIMITER, NEW_LINE_DELIMITER

STAFF_REGEX = re.compile(r'\bstaff\b', re.IGNORECASE)

# Cells whose text is a plain comma separated list of names
UNLABELED_CELLS = {
    'in_charge': 'In Charge',
    'food_lead': 'Food Lead',
    'childcare': 'Childcare',
}


def _remove_label(line: str) -> str:
    if COLON_DELIMITER in line:
        return line.split(COLON_DELIMITER, 1)[1]
    return line


class HelperValidator:
    """Reports helper tokens that match no group, alias, member or Basecamp person."""

    def __init__(self, directory: GroupDirectory, people):
        """
        Initialize the validator.

        Args:
            directory: Resolved groups, aliases and members
            people: Lookup with a get_person_id(name) method
        """
        self.directory = directory
        self.people = people

    def is_token_valid(self, token: str) -> bool:
        """
        Check a single helper token such as "HG1 Bros" or "Andrew Chan (staff)".

        An empty token is valid.
        """
        name, _ = remove_filters(normalize_member_name(token))
        name = normalize_member_name(STAFF_REGEX.sub('', name))
        if not name:
            return True

        if name in self.directory.groups_map or name in self.directory.alias_map:
            return True

        person_name = normalize_person_name(name)
        if any(normalize_person_name(member) == person_name for member in self.directory.member_map):
            return True

        return self.people.get_person_id(name) is not None

    def find_invalid_tokens(self, cell_text: str, labeled: bool = True) -> List[str]:
        """
        Find the tokens of a cell that do not resolve to anyone.

        Args:
            cell_text: Raw cell value
            labeled: Whether lines may start with a "Label:" prefix, as in the Helpers cell

        Returns:
            Invalid tokens in the order they appear
        """
        invalid = []

        for line in cell_text.split(NEW_LINE_DELIMITER):
            if labeled:
                line = _remove_label(line)
            for token in line.split(COMMA_DELIMITER):
                token = normalize_member_name(token)
                if not self.is_token_valid(token):
                    invalid.append(token)

        return invalid

    def validate_row(self, row: Row) -> List[str]:
        """
        Validate the name cells of a row.

        Args:
            row: Event row

        Returns:
            One message per cell that contains unknown names; empty when valid
        """
        messages = []

        invalid_helpers = self.find_invalid_tokens(row.helpers.value)
        if invalid_helpers:
            messages.append(f"Unknown helpers: {', '.join(invalid_helpers)}")

        for field_name, label in UNLABELED_CELLS.items():
            invalid = self.find_invalid_tokens(getattr(row, field_name).value, labeled=False)
            if invalid:
                messages.append(f"Unknown {label}: {', '.join(invalid)}")

        return messages
