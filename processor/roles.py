"""Role diffing between the current row and the persisted role map."""
from dataclasses import dataclass
from typing import List, Mapping


@dataclass
class RoleDiff:
    """Classification of a row's roles against the last saved state."""
    obsolete: List[str]
    new: List[str]
    surviving: List[str]


def diff_roles(current_roles: Mapping, prior_roles: Mapping) -> RoleDiff:
    """
    Classify roles as obsolete, new or surviving.

    Args:
        current_roles: Role name to pending todo request for the current row
        prior_roles: Role name to todo reference saved on the last sync

    Returns:
        RoleDiff; surviving roles get a full-replacement update
    """
    return RoleDiff(
        obsolete=[role for role in prior_roles if role not in current_roles],
        new=[role for role in current_roles if role not in prior_roles],
        surviving=[role for role in current_roles if role in prior_roles]
    )
