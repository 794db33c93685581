"""Unit tests for role diffing."""
import pytest

from processor.roles import diff_roles


def test_diff_roles_classifies_each_role():
    """Test obsolete, new and surviving roles are identified."""
    current = {'Lead': 'req-lead', 'Food: Helpers': 'req-food'}
    prior = {'Lead': '101', 'Childcare': '102'}

    role_diff = diff_roles(current, prior)

    assert role_diff.obsolete == ['Childcare']
    assert role_diff.new == ['Food: Helpers']
    assert role_diff.surviving == ['Lead']


def test_diff_roles_with_no_prior_state():
    """Test every role is new on the first sync."""
    role_diff = diff_roles({'Lead': 'req', 'Helpers': 'req'}, {})

    assert role_diff.obsolete == []
    assert role_diff.new == ['Lead', 'Helpers']
    assert role_diff.surviving == []


def test_diff_roles_with_all_roles_removed():
    """Test every prior role is obsolete when no roles remain."""
    role_diff = diff_roles({}, {'Lead': '101', 'Helpers': '102'})

    assert role_diff.obsolete == ['Lead', 'Helpers']
    assert role_diff.new == []
    assert role_diff.surviving == []


@pytest.mark.parametrize('current, prior', [
    ({}, {}),
    ({'a': 1}, {'a': 2}),
    ({'a': 1, 'b': 1}, {'b': 2, 'c': 2}),
    ({'a': 1, 'b': 1, 'c': 1}, {'d': 2}),
])
def test_diff_roles_partitions_both_key_sets(current, prior):
    """Test the three sets partition the current and prior role names."""
    role_diff = diff_roles(current, prior)

    assert set(role_diff.obsolete).isdisjoint(role_diff.new)
    assert set(role_diff.obsolete) | set(role_diff.surviving) == set(prior)
    assert set(role_diff.new) | set(role_diff.surviving) == set(current)
