"""
Exceptions shared by the release bot modules.
"""


class ReleaseBotError(Exception):
    """Base exception for release bot errors."""
    pass


class InvalidStateError(ReleaseBotError):
    """
    Raised when a precondition of the release process is violated.

    Examples: asking whether the version is the first final before the
    version is known, or computing the next minor from an unversioned branch.
    These are never retried.
    """
    pass
