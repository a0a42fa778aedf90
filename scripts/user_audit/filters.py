"""Regex inclusion filters on principal names and group memberships.

A pattern set is OR-combined: one hit anywhere is enough. Patterns are
unanchored (``re.search``); use ``^``/``$`` to anchor.
"""

from __future__ import annotations

import re
from typing import Iterable, Optional, Sequence

from scripts.user_audit.errors import ConfigurationError
from scripts.user_audit.models import Principal


def compile_patterns(raw: Iterable[str]) -> list[re.Pattern[str]]:
    """Compile user-supplied patterns, rejecting malformed ones up front."""
    compiled: list[re.Pattern[str]] = []
    for pattern in raw:
        try:
            compiled.append(re.compile(pattern))
        except re.error as exc:
            raise ConfigurationError(f"Invalid pattern {pattern!r}: {exc}") from exc
    return compiled


def matches_any(name: str, patterns: Sequence[re.Pattern[str]]) -> bool:
    return any(p.search(name) for p in patterns)


def matches_by_association(
    associated: Optional[Sequence[str]],
    patterns: Sequence[re.Pattern[str]],
) -> bool:
    """True if any associated name (e.g. a group) matches any pattern.

    ``None`` means the association is unknown and never matches.
    """
    if not associated:
        return False
    return any(matches_any(name, patterns) for name in associated)


def filter_by_name(
    principals: Sequence[Principal],
    patterns: Sequence[re.Pattern[str]],
) -> list[Principal]:
    return [p for p in principals if matches_any(p.name, patterns)]


def filter_by_groups(
    principals: Sequence[Principal],
    group_sets: Sequence[Optional[Sequence[str]]],
    patterns: Sequence[re.Pattern[str]],
) -> list[int]:
    """Return the indexes of principals with at least one matching group.

    ``group_sets[i]`` must describe ``principals[i]``.
    """
    if len(principals) != len(group_sets):
        raise ValueError(
            f"{len(principals)} principals but {len(group_sets)} group sets"
        )
    return [
        index
        for index, groups in enumerate(group_sets)
        if matches_by_association(groups, patterns)
    ]
