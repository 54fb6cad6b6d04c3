"""Prerequisites step: validates the release and resolves its version.

The release issue only provides the branch, the qualifier and the major
flag. This step checks they make sense, determines the version from the
open milestones when it is not known yet and derives the maintenance flag.
"""

import logging
import re
from typing import List

from .errors import InvalidStateError
from .github_client import GitHubClient, Milestone
from .release_information import ReleaseInformation
from .steps import StepContext, StepDefinition, StepName, StepResult

logger = logging.getLogger(__name__)

BRANCH_PATTERN = re.compile(r'^\d+\.\d+$')
QUALIFIER_PATTERN = re.compile(r'^(?:(?:Alpha|Beta|CR)\d+|Final)$', re.IGNORECASE)


def _find_prerelease_milestone(milestones: List[Milestone], version: str):
    for milestone in milestones:
        if milestone.title.lower() == version.lower():
            return milestone
    return None


def resolve_version(gh: GitHubClient, release: ReleaseInformation) -> str:
    """Determine the version to release from the open milestones.

    Pre-releases are always X.Y.0.<qualifier>. Final releases use the
    lowest open X.Y.Z milestone.

    Raises:
        InvalidStateError: If no milestone matches a final release
    """
    milestones = gh.list_milestones("open")

    if not release.is_final():
        expected = f"{release.branch}.0.{release.qualifier}"
        milestone = _find_prerelease_milestone(milestones, expected)
        return milestone.title if milestone else expected

    final_pattern = re.compile(rf'^{re.escape(release.branch)}\.(\d+)(?:\.Final)?$')
    candidates = [m.title for m in milestones if final_pattern.match(m.title)]
    if not candidates:
        raise InvalidStateError(
            f"Unable to determine the version to release: "
            f"no open milestone {release.branch}.x found"
        )

    # micro versions compare numerically: 3.2.9 before 3.2.10
    return min(candidates, key=lambda title: int(final_pattern.match(title).group(1)))


def run(ctx: StepContext) -> StepResult:
    release = ctx.release

    if not BRANCH_PATTERN.match(release.branch):
        raise InvalidStateError(f"Branch {release.branch} is not a valid release branch, expected X.Y")

    if release.qualifier and not QUALIFIER_PATTERN.match(release.qualifier):
        raise InvalidStateError(f"Qualifier {release.qualifier} is not supported")

    if not release.is_first_cr() and ctx.gh.get_branch_sha(release.branch) is None:
        raise InvalidStateError(
            f"Branch {release.branch} does not exist, "
            f"only the first Candidate Release can create it"
        )

    if not release.version:
        version = resolve_version(ctx.gh, release)
        logger.info(f"Resolved version {version} for branch {release.branch}")
        release = release.with_version(version)

    maintenance = release.is_final() and not release.is_first_final()
    if maintenance != release.maintenance:
        logger.info(f"Setting maintenance to {maintenance} for {release.version}")
        release = release.with_maintenance(maintenance)

    comment = ctx.render("prerequisites_done", release=release)
    return StepResult(release=release, comments=[comment])


PREREQUISITES = StepDefinition(
    name=StepName.PREREQUISITES,
    description="Check the prerequisites",
    run=run,
)
