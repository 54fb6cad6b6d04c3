"""
Operator commands recognized in release issue comments.
"""

from enum import Enum
from typing import Optional


class Command(Enum):
    """
    Tokens an operator types in a comment to drive a paused step.

    A comment matches a command when its first non-blank line is the
    command, optionally followed by free text after whitespace. Matching is
    case-insensitive. Commands quoted inside a sentence (as the bot does in
    its own instructions) never match.
    """
    AUTO = "auto"
    MANUAL = "manual"

    @property
    def full_command(self) -> str:
        return f"/{self.value}"

    def matches(self, body: Optional[str]) -> bool:
        if not body:
            return False

        for line in body.splitlines():
            line = line.strip().lower()
            if not line:
                continue
            if line == self.full_command:
                return True
            return line.startswith(self.full_command) and line[len(self.full_command)].isspace()

        return False
