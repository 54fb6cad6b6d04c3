"""
Release descriptor for the release bot.

A ReleaseInformation identifies one release under way: the target branch,
the pre-release qualifier and whether it is a major release. The version
and the maintenance flag may be corrected while the release progresses;
corrections produce a new descriptor instead of mutating the current one.
"""

from dataclasses import dataclass, replace
from typing import Any, Dict, Optional

from .errors import InvalidStateError

FINAL_QUALIFIER = "Final"
FIRST_CR_QUALIFIER = "CR1"


@dataclass(frozen=True, eq=False)
class ReleaseInformation:
    """
    Descriptor of the release being performed.

    Attributes:
        version: Full version (e.g., "3.2.0.CR1"), None until resolved
        branch: Target branch (e.g., "3.2")
        qualifier: Pre-release qualifier (e.g., "CR1", "Final" or empty)
        major: Whether this is a major-line release
        maintenance: Whether the release targets an already released line
    """
    version: Optional[str]
    branch: str
    qualifier: str = ""
    major: bool = False
    maintenance: bool = False

    def is_final(self) -> bool:
        return not self.qualifier or not self.qualifier.strip() or self.qualifier == FINAL_QUALIFIER

    def is_first_final(self) -> bool:
        """
        Whether this release is the first final of its branch (X.Y.0).

        Raises:
            InvalidStateError: If the version is not known yet
        """
        if self.version is None:
            raise InvalidStateError("Unable to know if the version is the first final at this stage")

        return self.version.endswith(".0") or self.version.endswith(".0.Final")

    def is_first_cr(self) -> bool:
        return (self.qualifier or "").lower() == FIRST_CR_QUALIFIER.lower()

    @property
    def identifier(self) -> str:
        """Short identifier used in bot comment markers (e.g., "3.2-CR1")."""
        return f"{self.branch}-{self.qualifier}" if self.qualifier else self.branch

    def with_version(self, version: str) -> "ReleaseInformation":
        return replace(self, version=version)

    def with_maintenance(self, maintenance: bool) -> "ReleaseInformation":
        return replace(self, maintenance=maintenance)

    def __eq__(self, other):
        if not isinstance(other, ReleaseInformation):
            return NotImplemented
        return (
            self.branch == other.branch
            and self.major == other.major
            and self.qualifier == other.qualifier
        )

    def __hash__(self):
        return hash((self.branch, self.major, self.qualifier))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "branch": self.branch,
            "qualifier": self.qualifier,
            "major": self.major,
            "maintenance": self.maintenance,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReleaseInformation":
        """
        Build a descriptor from persisted data. Unknown keys are ignored.

        Raises:
            InvalidStateError: If the branch is missing
        """
        branch = data.get("branch")
        if not branch:
            raise InvalidStateError("Release information has no branch")

        version = data.get("version")
        return cls(
            version=str(version) if version else None,
            branch=str(branch),
            qualifier=str(data.get("qualifier") or ""),
            major=bool(data.get("major", False)),
            maintenance=bool(data.get("maintenance", False)),
        )
