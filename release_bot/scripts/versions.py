"""
Version arithmetic for release branches.

Branches are named "X.Y". Branch names are compared segment by segment
as numbers so that 1.9 sorts before 1.10.
"""

import re
from typing import Iterable, Optional, Tuple

from .errors import InvalidStateError

# 3.2, 3.2.0, 3.2.0.CR1, 3.2.0.Final, 3.2.0-rc1
BRANCH_PATTERN = re.compile(r'^(\d+)\.(\d+)(?:[.\-].*)?$')


def get_branch(version: str) -> Optional[str]:
    """
    Extract the "X.Y" branch from a version or tag name.

    Examples:
        >>> get_branch("3.2.0.Final")
        '3.2'
        >>> get_branch("3.10")
        '3.10'
        >>> get_branch("main") is None
        True

    Returns:
        Branch name, or None if the name does not start with X.Y
    """
    match = BRANCH_PATTERN.match(version.strip())
    if not match:
        return None
    return f"{int(match.group(1))}.{int(match.group(2))}"


def branch_key(branch: str) -> Tuple[int, ...]:
    """
    Numeric sort key of a branch name.

    Raises:
        InvalidStateError: If a segment is not numeric
    """
    try:
        return tuple(int(segment) for segment in branch.split("."))
    except ValueError:
        raise InvalidStateError(f"Branch {branch} is not a versioned branch")


def get_previous_minor(branches: Iterable[str], current_branch: str) -> Optional[str]:
    """
    Find the greatest known branch strictly lower than the current one.

    Args:
        branches: Known released branches (e.g., derived from tags)
        current_branch: Branch being released (e.g., "2.0")

    Returns:
        Previous branch, or None if there is none
    """
    current = branch_key(current_branch)
    candidates = [b for b in set(branches) if branch_key(b) < current]
    if not candidates:
        return None
    return max(candidates, key=branch_key)


def get_next_minor(branch: str) -> str:
    """
    Compute the minor following the given branch ("1.2" → "1.3").

    Raises:
        InvalidStateError: If the branch is not an X.Y branch
    """
    segments = branch.split(".")

    if len(segments) < 2:
        raise InvalidStateError("CR1 releases should be made from a versioned branch and not from main")

    try:
        return f"{segments[0]}.{int(segments[1]) + 1}"
    except ValueError:
        raise InvalidStateError(f"Branch {branch} does not have a numeric minor segment")


def branches_from_tags(tags: Iterable[str]) -> set:
    """Collect the X.Y branches of all version tags, ignoring other tags."""
    branches = set()
    for tag in tags:
        branch = get_branch(tag)
        if branch:
            branches.add(branch)
    return branches
