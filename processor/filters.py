"""Helper filters such as "HG1 Bros" or "UCSD (married)".

To add a filter, write a predicate over a member's attributes and register
it in FILTER_MAP under the name used on the Onestop.
"""
import re
from typing import Callable, Dict, Iterable, List, Tuple

BROS_GENDER = 'Male'
SIS_GENDER = 'Female'

EMPTY_PARENTHESES_REGEX = re.compile(r'\(\s*\)')
EXTRA_WHITESPACE_REGEX = re.compile(r'\s+')

MemberMap = Dict[str, dict]
FilterFunction = Callable[[dict], bool]


def bros_filter(member: dict) -> bool:
    return member.get('gender') == BROS_GENDER


def sis_filter(member: dict) -> bool:
    return member.get('gender') == SIS_GENDER


def married_filter(member: dict) -> bool:
    return bool(member.get('married'))


def parents_filter(member: dict) -> bool:
    return bool(member.get('parent'))


def dads_filter(member: dict) -> bool:
    return bros_filter(member) and parents_filter(member)


def moms_filter(member: dict) -> bool:
    return sis_filter(member) and parents_filter(member)


def minus_moms_filter(member: dict) -> bool:
    return not moms_filter(member)


def minus_dads_filter(member: dict) -> bool:
    return not dads_filter(member)


# "minus moms" precedes "moms" so the longer name is matched first
FILTER_MAP: Dict[str, FilterFunction] = {
    'brothers': bros_filter,
    'bros': bros_filter,
    'sisters': sis_filter,
    'sis': sis_filter,
    'married': married_filter,
    'parents': parents_filter,
    'minus moms': minus_moms_filter,
    'minus dads': minus_dads_filter,
    'moms': moms_filter,
    'dads': dads_filter,
}

FILTER_NAMES: List[str] = list(FILTER_MAP)

_FILTER_REGEXES = {
    name: re.compile(r'\b' + name.replace(' ', r'\s+') + r'\b', re.IGNORECASE)
    for name in FILTER_MAP
}


def is_filter(name: str) -> bool:
    return name.strip().lower() in FILTER_MAP


def contains_filter(text: str) -> bool:
    return any(regex.search(text) for regex in _FILTER_REGEXES.values())


def remove_filters(text: str) -> Tuple[str, List[str]]:
    """
    Strip filter names out of a helper token.

    Matching is case-insensitive on whole words; the rest of the token keeps
    its case so it can still be looked up as a group or alias.

    Args:
        text: Helper token, e.g. "igsm Married Bros"

    Returns:
        Tuple of (token without filters, filter names in FILTER_MAP order),
        e.g. ("igsm", ["bros", "married"])
    """
    removed = []
    remaining = text

    for name, regex in _FILTER_REGEXES.items():
        if regex.search(remaining):
            remaining = regex.sub(' ', remaining)
            removed.append(name)

    if not removed:
        return text, []

    remaining = EMPTY_PARENTHESES_REGEX.sub(' ', remaining)
    return EXTRA_WHITESPACE_REGEX.sub(' ', remaining).strip(), removed


def filter_members(names: Iterable[str], filters: Iterable[str], member_map: MemberMap) -> List[str]:
    """
    Keep the members that satisfy every filter.

    Names missing from the member map are always dropped, since their
    attributes are unknown. Unknown filter names are ignored.

    Args:
        names: Member names, e.g. a group's member list
        filters: Filter names from the Onestop
        member_map: Member name to attributes (gender, married, parent, class)

    Returns:
        Matching names in their original order
    """
    filter_functions = [
        FILTER_MAP[name]
        for name in (f.strip().lower() for f in filters)
        if name in FILTER_MAP
    ]

    return [
        name for name in names
        if name in member_map and all(check(member_map[name]) for check in filter_functions)
    ]
