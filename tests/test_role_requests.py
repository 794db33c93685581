"""Unit tests for role request building."""
from datetime import datetime
from unittest.mock import Mock

import pytest

from processor.groups import GroupDirectory
from processor.models import BasecampTodo, Group, Member, RichText, Row
from processor.role_requests import RoleRequestBuilder, parse_helper_lines

PEOPLE = {
    'Andrew Chan': '11',
    'Bea Lin': '12',
    'Carol Diaz': '13',
    'Dana Ng': '14',
    'Eve Park': '15',
}


@pytest.fixture
def people():
    """Create a people lookup backed by a dictionary."""
    lookup = Mock()
    lookup.get_person_id.side_effect = PEOPLE.get
    return lookup


@pytest.fixture
def directory(property_store):
    """Create a GroupDirectory with one group and one alias."""
    directory = GroupDirectory(property_store)
    directory.reload(
        [Group(name='Setup Team', members=['Bea Lin', 'Carol Diaz'])],
        [],
        [Member(name='Andrew Chan', alternate_names=['Andy'])]
    )
    return directory


@pytest.fixture
def builder(directory, people):
    """Create a RoleRequestBuilder."""
    return RoleRequestBuilder(directory, people)


@pytest.fixture
def sample_row():
    """Create a sample Row for testing."""
    return Row(
        start_time=datetime(2024, 3, 10, 18, 0),
        end_time=datetime(2024, 3, 10, 20, 0),
        what=RichText('Large Group'),
        where=RichText('Fellowship Hall', link='https://maps.example.com/hall'),
        in_charge=RichText('Andy'),
        helpers=RichText('Setup: Setup Team\nEve Park'),
        food_lead=RichText('Dana Ng'),
        row_id='row-1'
    )


def test_parse_helper_lines_combines_labels():
    """Test labelled lines are grouped and unlabelled lines kept apart."""
    text = 'Setup: Bob, Carol\nDana\n\nSetup: Eve\n  Music :  Frank '

    assert parse_helper_lines(text) == [
        ('Setup', 'Bob, Carol, Eve'),
        (None, 'Dana'),
        ('Music', 'Frank'),
    ]


def test_build_role_requests(builder, sample_row):
    """Test a todo request is built for every assigned role."""
    role_requests = builder.build_role_requests(sample_row)

    assert list(role_requests) == ['Lead', 'Food: Lead', 'Setup: Helpers', 'Helpers']
    assert role_requests['Lead'].content == 'Lead Large Group'
    assert role_requests['Lead'].assignee_ids == ['11']
    assert role_requests['Setup: Helpers'].assignee_ids == ['12', '13']
    assert role_requests['Helpers'].assignee_ids == ['15']
    assert role_requests['Food: Lead'].due_on == '2024-03-10'
    assert all(request.notify for request in role_requests.values())


def test_build_role_requests_skips_unknown_people(builder, sample_row, caplog):
    """Test names without a Basecamp person are logged and left out."""
    sample_row.food_lead = RichText('Dana Ng, Zed Unknown')

    role_requests = builder.build_role_requests(sample_row)

    assert role_requests['Food: Lead'].assignee_ids == ['14']
    assert 'Zed Unknown' in caplog.text


def test_build_role_requests_without_assignments(builder):
    """Test a row with no names has no roles."""
    row = Row(
        start_time=datetime(2024, 3, 10, 18, 0),
        end_time=datetime(2024, 3, 10, 20, 0),
        what=RichText('Prayer')
    )

    assert builder.build_role_requests(row) == {}


def test_build_description_renders_links(builder, sample_row):
    """Test the description carries each filled field as HTML."""
    description = builder.build_description(sample_row)

    assert '<strong>Where:</strong> <a href="https://maps.example.com/hall">Fellowship Hall</a>' in description
    assert '<strong>Helpers:</strong> Setup: Setup Team<br>Eve Park' in description
    assert 'Childcare' not in description


def test_build_schedule_entry_request(builder, sample_row):
    """Test the schedule entry links todos and invites every assignee."""
    role_requests = builder.build_role_requests(sample_row)
    role_todo_map = {
        'Lead': BasecampTodo(id='501', url='https://3.basecamp.com/999/todos/501'),
        'Helpers': BasecampTodo(id='502'),
    }

    request = builder.build_schedule_entry_request(sample_row, role_requests, role_todo_map)

    assert request.summary == 'Large Group'
    assert request.starts_at == '2024-03-10T18:00:00'
    assert request.ends_at == '2024-03-10T20:00:00'
    assert request.participant_ids == ['11', '14', '12', '13', '15']
    assert '<a href="https://3.basecamp.com/999/todos/501">Lead</a>' in request.description
    assert not request.notify
