"""Builds Basecamp payloads from the text of an event row."""
import logging
from typing import Dict, List, Optional, Tuple

from processor.groups import GroupDirectory, remove_duplicates, split_names
from processor.models import (
    RoleRequestMap,
    RoleTodoMap,
    Row,
    ScheduleEntryRequest,
    TodoRequest,
)
from processor.rich_text import render_link, render_rich_text

logger = logging.getLogger(__name__)

NEW_LINE_DELIMITER = '\n'
COLON_DELIMITER = ':'
LINE_BREAK = '<br>'

ROLE_LEAD = 'Lead'
ROLE_FOOD_LEAD = 'Food: Lead'
ROLE_CHILDCARE = 'Childcare'
ROLE_HELPERS = 'Helpers'


def parse_helper_lines(helpers_text: str) -> List[Tuple[Optional[str], str]]:
    """
    Split the Helpers cell into (role label, names) pairs.

    Each line is either "Label: name, name" or an unlabeled list of names.
    Lines sharing a label are combined.

    Args:
        helpers_text: Raw Helpers cell value

    Returns:
        List of (label or None, comma separated names) in first-seen order
    """
    combined: Dict[Optional[str], List[str]] = {}

    for line in helpers_text.split(NEW_LINE_DELIMITER):
        line = line.strip()
        if not line:
            continue

        label = None
        names = line
        if COLON_DELIMITER in line:
            label, names = line.split(COLON_DELIMITER, 1)
            label = label.strip() or None

        combined.setdefault(label, []).append(names.strip())

    return [(label, ', '.join(parts)) for label, parts in combined.items()]


class RoleRequestBuilder:
    """Turns rows into role todo requests and schedule entry requests."""

    def __init__(self, directory: GroupDirectory, people):
        """
        Initialize the builder.

        Args:
            directory: Resolved groups and aliases used to expand helper names
            people: Lookup with a get_person_id(name) method
        """
        self.directory = directory
        self.people = people

    def build_role_requests(self, row: Row) -> RoleRequestMap:
        """
        Build one todo request per assigned role on the row.

        Args:
            row: Event row

        Returns:
            Mapping of role name to TodoRequest; roles without names are omitted
        """
        role_requests: RoleRequestMap = {}
        description = self.build_description(row)
        due_on = row.start_time.date().isoformat()
        what = row.what.value

        roles = [
            (ROLE_LEAD, f"Lead {what}", row.in_charge.value),
            (ROLE_FOOD_LEAD, f"Lead food for {what}", row.food_lead.value),
            (ROLE_CHILDCARE, f"Childcare for {what}", row.childcare.value),
        ]
        for label, names in parse_helper_lines(row.helpers.value):
            if label:
                roles.append((f"{label}: {ROLE_HELPERS}", f"Help with {label} for {what}", names))
            else:
                roles.append((ROLE_HELPERS, f"Help with {what}", names))

        for role, content, names_text in roles:
            assignee_ids = self._get_assignee_ids(names_text)
            if assignee_ids is None:
                continue

            role_requests[role] = TodoRequest(
                content=content,
                description=description,
                assignee_ids=assignee_ids,
                completion_subscriber_ids=[],
                notify=True,
                due_on=due_on
            )

        return role_requests

    def build_schedule_entry_request(
        self,
        row: Row,
        role_requests: RoleRequestMap,
        role_todo_map: RoleTodoMap
    ) -> ScheduleEntryRequest:
        """
        Build the schedule entry for a row.

        Args:
            row: Event row
            role_requests: Todo requests for the row's roles
            role_todo_map: Todos that exist for the row, linked from the entry

        Returns:
            ScheduleEntryRequest whose participants are every assignee
        """
        description = self.build_description(row)
        todo_links = [
            render_link(role, todo.url)
            for role, todo in role_todo_map.items()
            if todo.url
        ]
        if todo_links:
            description += f"{LINE_BREAK}<strong>Todos:</strong> {', '.join(todo_links)}"

        participant_ids = remove_duplicates(
            assignee_id
            for request in role_requests.values()
            for assignee_id in request.assignee_ids
        )

        return ScheduleEntryRequest(
            summary=row.what.value,
            starts_at=row.start_time.isoformat(),
            ends_at=row.end_time.isoformat(),
            description=description,
            participant_ids=participant_ids,
            all_day=False,
            notify=False
        )

    def build_description(self, row: Row) -> str:
        """Render the row's free-text fields as an HTML description."""
        fields = [
            ('Where', row.where),
            ('In Charge', row.in_charge),
            ('Helpers', row.helpers),
            ('Food Lead', row.food_lead),
            ('Childcare', row.childcare),
            ('Notes', row.notes),
        ]

        lines = []
        for label, text in fields:
            if text.value:
                rendered = render_rich_text(text).replace(NEW_LINE_DELIMITER, LINE_BREAK)
                lines.append(f"<strong>{label}:</strong> {rendered}")

        return LINE_BREAK.join(lines)

    def _get_assignee_ids(self, names_text: str) -> Optional[List[str]]:
        names = remove_duplicates(
            member
            for token in split_names(names_text)
            for member in self.directory.expand(token)
        )
        if not names:
            return None

        assignee_ids = []
        for name in names:
            person_id = self.people.get_person_id(name)
            if person_id is None:
                logger.warning(f"No Basecamp person found for {name}")
                continue
            assignee_ids.append(person_id)

        return remove_duplicates(assignee_ids)
