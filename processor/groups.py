"""Group, supergroup and alias resolution for helper assignments."""
import logging
import re
from typing import Iterable, List, Optional, Sequence, Tuple

from processor.errors import ErrorKind, SyncError
from processor.filters import MemberMap, filter_members, remove_filters
from processor.models import AliasMap, Group, GroupsMap, Member, Supergroup

logger = logging.getLogger(__name__)

COMMA_DELIMITER = ','
GROUPS_MAP_KEY = 'GROUPS_MAP'
ALIASES_MAP_KEY = 'ALIASES_MAP'
MEMBER_MAP_KEY = 'MEMBER_MAP'

GROUP_NAME_COLUMN_INDEX = 0
GROUP_MEMBER_NAMES_COLUMN_INDEX = 1
GROUP_ALIASES_COLUMN_INDEX = 2
SUPERGROUP_NAME_COLUMN_INDEX = 0
SUBGROUP_COLUMN_INDEX = 1
SUPERGROUP_MEMBERS_COLUMN_INDEX = 2
SUPERGROUP_ALIASES_COLUMN_INDEX = 3
MEMBER_NAME_COLUMN_INDEX = 0
GENDER_COLUMN_INDEX = 1
MARRIED_COLUMN_INDEX = 2
PARENT_COLUMN_INDEX = 3
CLASS_COLUMN_INDEX = 4
ALTERNATE_NAMES_COLUMN_INDEX = 5
HUSBAND_COLUMN_INDEX = 0
WIFE_COLUMN_INDEX = 1
COUPLE_ALIASES_COLUMN_INDEX = 2

TRUE_CELL_VALUES = {'true', 'yes', 'y', '1', 'x'}

EXTRA_WHITESPACE_REGEX = re.compile(r'\s+')


def normalize_member_name(name) -> str:
    """Collapse repeated whitespace and trim a member name."""
    if name is None:
        return ''
    return EXTRA_WHITESPACE_REGEX.sub(' ', str(name)).strip()


def split_names(cell) -> List[str]:
    """Split a comma separated cell into normalized, non-empty names."""
    if cell is None:
        return []
    names = [normalize_member_name(name) for name in str(cell).split(COMMA_DELIMITER)]
    return [name for name in names if name]


def remove_duplicates(names: Iterable[str]) -> List[str]:
    """Deduplicate names keeping the first occurrence of each."""
    return list(dict.fromkeys(names))


def _cell(row_values: Sequence, index: int):
    return row_values[index] if index < len(row_values) else ''


def parse_group_table(cell_values: Sequence[Sequence]) -> List[Group]:
    """
    Parse the Groups table into Group definitions.

    Args:
        cell_values: Cell matrix including the header row

    Returns:
        List of Group objects; rows without a group name are skipped
    """
    groups = []

    # Start at row 1 to skip the table header row
    for row_values in cell_values[1:]:
        name = normalize_member_name(_cell(row_values, GROUP_NAME_COLUMN_INDEX))
        if not name:
            continue

        groups.append(Group(
            name=name,
            members=split_names(_cell(row_values, GROUP_MEMBER_NAMES_COLUMN_INDEX)),
            aliases=split_names(_cell(row_values, GROUP_ALIASES_COLUMN_INDEX))
        ))

    return groups


def parse_supergroup_table(cell_values: Sequence[Sequence]) -> List[Supergroup]:
    """
    Parse the Supergroups table into Supergroup definitions.

    Args:
        cell_values: Cell matrix including the header row

    Returns:
        List of Supergroup objects; rows without a name are skipped
    """
    supergroups = []

    for row_values in cell_values[1:]:
        name = normalize_member_name(_cell(row_values, SUPERGROUP_NAME_COLUMN_INDEX))
        if not name:
            continue

        supergroups.append(Supergroup(
            name=name,
            subgroups=split_names(_cell(row_values, SUBGROUP_COLUMN_INDEX)),
            additional_members=split_names(_cell(row_values, SUPERGROUP_MEMBERS_COLUMN_INDEX)),
            aliases=split_names(_cell(row_values, SUPERGROUP_ALIASES_COLUMN_INDEX))
        ))

    return supergroups


def _parse_flag(value) -> bool:
    # Checkbox cells arrive as booleans, typed cells as text
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in TRUE_CELL_VALUES


def parse_member_table(cell_values: Sequence[Sequence]) -> List[Member]:
    """Parse the Members table into Member definitions."""
    members = []

    for row_values in cell_values[1:]:
        name = normalize_member_name(_cell(row_values, MEMBER_NAME_COLUMN_INDEX))
        if not name:
            continue

        members.append(Member(
            name=name,
            alternate_names=split_names(_cell(row_values, ALTERNATE_NAMES_COLUMN_INDEX)),
            gender=normalize_member_name(_cell(row_values, GENDER_COLUMN_INDEX)),
            married=_parse_flag(_cell(row_values, MARRIED_COLUMN_INDEX)),
            parent=_parse_flag(_cell(row_values, PARENT_COLUMN_INDEX)),
            member_class=normalize_member_name(_cell(row_values, CLASS_COLUMN_INDEX))
        ))

    return members


def parse_couple_table(cell_values: Sequence[Sequence]) -> AliasMap:
    """
    Parse the Couples table into an alias map.

    Each alias of a couple maps to [husband, wife]. Rows missing either
    spouse are skipped.

    Args:
        cell_values: Cell matrix including the header row

    Returns:
        Alias map of couple aliases
    """
    alias_map: AliasMap = {}

    for row_values in cell_values[1:]:
        husband = normalize_member_name(_cell(row_values, HUSBAND_COLUMN_INDEX))
        wife = normalize_member_name(_cell(row_values, WIFE_COLUMN_INDEX))
        if not husband or not wife:
            continue

        couple_aliases = {
            alias: [husband, wife]
            for alias in split_names(_cell(row_values, COUPLE_ALIASES_COLUMN_INDEX))
        }
        alias_map = merge_alias_maps(alias_map, couple_aliases)

    return alias_map


def merge_groups_maps(first: GroupsMap, second: GroupsMap) -> GroupsMap:
    """
    Merge two groups maps, concatenating the members of shared names.

    Args:
        first: Groups map whose entries come first
        second: Groups map merged into the first

    Returns:
        New merged groups map
    """
    merged = {name: list(members) for name, members in first.items()}

    for name, members in second.items():
        if name in merged:
            logger.warning(f"Duplicate group {name} detected, combining members")
            merged[name] = merged[name] + list(members)
        else:
            merged[name] = list(members)

    return merged


def merge_alias_maps(first: AliasMap, second: AliasMap) -> AliasMap:
    """
    Merge two alias maps. An alias defined in both accumulates the members
    of every definition instead of being overwritten.
    """
    merged = {alias: list(names) for alias, names in first.items()}

    for alias, names in second.items():
        if alias in merged:
            logger.warning(f"Duplicate alias {alias} detected, combining members")
            merged[alias] = merged[alias] + list(names)
        else:
            merged[alias] = list(names)

    return merged


def _remove_duplicates_from_map(mapping: dict) -> dict:
    return {name: remove_duplicates(members) for name, members in mapping.items()}


def resolve_plain_groups(groups: Iterable[Group]) -> Tuple[GroupsMap, AliasMap]:
    """
    Resolve plain group definitions.

    Args:
        groups: Group definitions in table order

    Returns:
        Tuple of (groups map, alias map); members are not yet deduplicated
    """
    groups = list(groups)
    groups_map: GroupsMap = {}

    for group in groups:
        if group.name in groups_map:
            logger.warning(
                f"Group {group.name} has already been defined in the Groups table. "
                f"Combining the two lists of members"
            )
            groups_map[group.name] = groups_map[group.name] + list(group.members)
        else:
            groups_map[group.name] = list(group.members)

    alias_map: AliasMap = {}
    for group in groups:
        group_aliases = {alias: groups_map[group.name] for alias in group.aliases}
        alias_map = merge_alias_maps(alias_map, group_aliases)

    return groups_map, alias_map


def _combine_supergroup_definitions(supergroups: Iterable[Supergroup]) -> dict:
    definitions = {}

    for supergroup in supergroups:
        existing = definitions.get(supergroup.name)
        if existing is None:
            definitions[supergroup.name] = supergroup
            continue

        logger.warning(
            f"Supergroup {supergroup.name} has already been defined in the Supergroups table. "
            f"Combining the two definitions"
        )
        definitions[supergroup.name] = Supergroup(
            name=supergroup.name,
            subgroups=existing.subgroups + supergroup.subgroups,
            additional_members=existing.additional_members + supergroup.additional_members,
            aliases=existing.aliases + supergroup.aliases
        )

    return definitions


def resolve_supergroups(
    supergroups: Iterable[Supergroup],
    groups_map: GroupsMap
) -> Tuple[GroupsMap, AliasMap]:
    """
    Resolve supergroups into flat member lists in dependency order.

    A supergroup may reference plain groups, supergroups declared later in
    the table, or names that are not defined anywhere (which contribute no
    members). A supergroup is only resolved once every supergroup it
    references has been resolved; otherwise it is pushed back onto the work
    stack underneath its unresolved dependencies.

    Args:
        supergroups: Supergroup definitions in table order
        groups_map: Resolved plain groups

    Returns:
        Tuple of (supergroups map, alias map)

    Raises:
        SyncError: DATA_INTEGRITY if supergroups depend on each other in a cycle
    """
    definitions = _combine_supergroup_definitions(supergroups)
    resolved: GroupsMap = {}
    waiting = set()

    # Reversed so supergroups are popped in table order
    stack = list(reversed(list(definitions)))

    while stack:
        name = stack.pop()
        if name in resolved:
            continue

        supergroup = definitions[name]
        unresolved = [
            subgroup for subgroup in supergroup.subgroups
            if subgroup in definitions and subgroup not in resolved
        ]

        if not unresolved:
            members = []
            for subgroup in supergroup.subgroups:
                members.extend(groups_map.get(subgroup, []))
                members.extend(resolved.get(subgroup, []))
            members.extend(supergroup.additional_members)

            resolved[name] = remove_duplicates(members)
            waiting.discard(name)
            continue

        # Every node still waiting is an ancestor of this one on the stack
        waiting.add(name)
        for subgroup in unresolved:
            if subgroup in waiting:
                raise SyncError(
                    ErrorKind.DATA_INTEGRITY,
                    f"Supergroup {name} has a circular dependency on {subgroup}"
                )

        stack.append(name)
        stack.extend(reversed(unresolved))

    alias_map: AliasMap = {}
    for supergroup in definitions.values():
        supergroup_aliases = {alias: resolved[supergroup.name] for alias in supergroup.aliases}
        alias_map = merge_alias_maps(alias_map, supergroup_aliases)

    return resolved, alias_map


def resolve_groups(
    groups: Iterable[Group],
    supergroups: Iterable[Supergroup]
) -> Tuple[GroupsMap, AliasMap]:
    """
    Expand group and supergroup definitions into flat member lists.

    Args:
        groups: Plain group definitions
        supergroups: Supergroup definitions

    Returns:
        Tuple of (groups map, alias map) with deduplicated member lists
    """
    groups_map, group_aliases = resolve_plain_groups(groups)
    supergroups_map, supergroup_aliases = resolve_supergroups(supergroups, groups_map)

    combined_groups_map = merge_groups_maps(groups_map, supergroups_map)
    combined_alias_map = merge_alias_maps(group_aliases, supergroup_aliases)

    return (
        _remove_duplicates_from_map(combined_groups_map),
        _remove_duplicates_from_map(combined_alias_map)
    )


def build_member_alias_map(members: Iterable[Member]) -> AliasMap:
    """
    Map each member's alternate names to the member's canonical name.

    Args:
        members: Member definitions from the Members table

    Returns:
        Alias map; an alternate name shared by several people lists all of them

    Raises:
        SyncError: DATA_INTEGRITY if the same person is defined more than once
    """
    seen = set()
    alias_map: AliasMap = {}

    for member in members:
        if member.name in seen:
            raise SyncError(
                ErrorKind.DATA_INTEGRITY,
                f"Person {member.name} is defined more than once in the Members table"
            )
        seen.add(member.name)

        for alternate_name in member.alternate_names:
            alias_map.setdefault(alternate_name, []).append(member.name)

    return alias_map


def build_member_map(members: Iterable[Member]) -> MemberMap:
    """Map each member's name to the attributes helper filters use."""
    return {member.name: member.to_dict() for member in members}


class GroupDirectory:
    """Cache of the resolved groups, aliases and members backed by the settings store."""

    def __init__(self, settings_store):
        """
        Initialize the directory.

        Args:
            settings_store: Key/value store holding the persisted maps
        """
        self.settings_store = settings_store
        self._groups_map: Optional[GroupsMap] = None
        self._alias_map: Optional[AliasMap] = None
        self._member_map: Optional[MemberMap] = None

    @property
    def groups_map(self) -> GroupsMap:
        self._load()
        return self._groups_map

    @property
    def alias_map(self) -> AliasMap:
        self._load()
        return self._alias_map

    @property
    def member_map(self) -> MemberMap:
        self._load()
        return self._member_map

    def _load(self) -> None:
        if self._groups_map is None or self._alias_map is None or self._member_map is None:
            self._groups_map = self.settings_store.get(GROUPS_MAP_KEY) or {}
            self._alias_map = self.settings_store.get(ALIASES_MAP_KEY) or {}
            self._member_map = self.settings_store.get(MEMBER_MAP_KEY) or {}
            logger.info(
                f"Loaded {len(self._groups_map)} groups, {len(self._alias_map)} aliases and "
                f"{len(self._member_map)} members from the settings store"
            )

    def invalidate(self) -> None:
        """Drop the cached maps so the next lookup reads the store again."""
        self._groups_map = None
        self._alias_map = None
        self._member_map = None

    def reload(
        self,
        groups: Iterable[Group],
        supergroups: Iterable[Supergroup],
        members: Iterable[Member] = (),
        couples: Optional[AliasMap] = None
    ) -> Tuple[GroupsMap, AliasMap]:
        """
        Rebuild the groups, aliases and members wholesale and persist them.

        Args:
            groups: Plain group definitions
            supergroups: Supergroup definitions
            members: Member definitions providing person aliases and filter attributes
            couples: Couple aliases, as returned by parse_couple_table

        Returns:
            Tuple of (groups map, alias map) that was persisted
        """
        members = list(members)
        groups_map, group_aliases = resolve_groups(groups, supergroups)
        member_aliases = merge_alias_maps(build_member_alias_map(members), couples or {})
        alias_map = _remove_duplicates_from_map(merge_alias_maps(member_aliases, group_aliases))
        member_map = build_member_map(members)

        self.settings_store.put(GROUPS_MAP_KEY, groups_map)
        self.settings_store.put(ALIASES_MAP_KEY, alias_map)
        self.settings_store.put(MEMBER_MAP_KEY, member_map)

        self._groups_map = groups_map
        self._alias_map = alias_map
        self._member_map = member_map

        logger.info(
            f"Reloaded {len(groups_map)} groups, {len(alias_map)} aliases and {len(member_map)} members"
        )
        return groups_map, alias_map

    def expand(self, token: str) -> List[str]:
        """
        Expand a helper token into member names.

        Filters in the token ("HG1 Bros", "UCSD (married)") narrow the
        expansion to the members whose attributes match every filter.

        Args:
            token: Group name, alias or person name, optionally with filters

        Returns:
            Member names the token denotes; unknown tokens denote themselves
        """
        name, filters = remove_filters(normalize_member_name(token))

        if name in self.groups_map:
            names = list(self.groups_map[name])
        elif name in self.alias_map:
            names = list(self.alias_map[name])
        else:
            names = [name] if name else []

        if filters:
            return filter_members(names, filters, self.member_map)
        return names
