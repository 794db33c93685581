"""Shared fixtures for the test suite."""
import copy
import os
from unittest.mock import patch

import pytest


class InMemoryPropertyStore:
    """Property store double with the same interface as DynamoDBPropertyStore."""

    def __init__(self, items=None):
        self.items = dict(items or {})

    def get(self, key):
        return copy.deepcopy(self.items.get(key))

    def get_all(self):
        return copy.deepcopy(self.items)

    def put(self, key, value):
        self.items[key] = copy.deepcopy(value)

    def delete(self, key):
        self.items.pop(key, None)


@pytest.fixture
def property_store():
    """Create an empty in-memory property store."""
    return InMemoryPropertyStore()


@pytest.fixture
def settings_store():
    """Create a second in-memory store for groups, members and people."""
    return InMemoryPropertyStore()


@pytest.fixture
def aws_credentials():
    """Fake AWS credentials so moto never reaches a real account."""
    env_vars = {
        'AWS_ACCESS_KEY_ID': 'testing',
        'AWS_SECRET_ACCESS_KEY': 'testing',
        'AWS_SECURITY_TOKEN': 'testing',
        'AWS_SESSION_TOKEN': 'testing',
        'AWS_DEFAULT_REGION': 'us-east-1'
    }
    with patch.dict(os.environ, env_vars):
        yield env_vars
