"""
Create branch step for the first Candidate Release.

The first CR of a minor creates the X.Y branch from the main branch and
does the housekeeping that goes with it:

1. Create the X.Y branch (if it does not exist yet)
2. Rename the "X.Y - main" milestone to the version and open the
   "X.(Y+1) - main" milestone for future developments
3. Rename the generic backport label to the previous minor backport label
   and recreate the generic one
4. Add the generic backport label to the open pull requests that carry
   the previous minor backport label

Every action checks the remote state first so that running the step
again after a partial failure is safe.
"""

import logging
from typing import List, Optional

from . import config
from .command import Command
from .context_builder import release_context
from .errors import InvalidStateError
from .github_client import GitHubClient, GitHubClientError, Milestone
from .progress import you_are_here
from .release_information import ReleaseInformation
from .steps import StepContext, StepDefinition, StepName, StepResult
from .versions import branches_from_tags, get_next_minor, get_previous_minor

logger = logging.getLogger(__name__)

PREVIOUS_MINOR_FALLBACK = "previous minor"


def get_previous_minor_from_tags(gh: GitHubClient, branch: str) -> Optional[str]:
    """Find the minor preceding the branch among the released versions."""
    return get_previous_minor(branches_from_tags(gh.list_tags()), branch)


def find_milestone(milestones: List[Milestone], title: str) -> Optional[Milestone]:
    for milestone in milestones:
        if milestone.title == title:
            return milestone
    return None


def should_skip(ctx: StepContext) -> bool:
    return not ctx.release.is_first_cr()


def should_pause(ctx: StepContext) -> bool:
    try:
        previous_minor = get_previous_minor_from_tags(ctx.gh, ctx.release.branch) or PREVIOUS_MINOR_FALLBACK
    except GitHubClientError as e:
        logger.warning(f"Unable to determine the previous minor of {ctx.release.branch}: {e}")
        previous_minor = PREVIOUS_MINOR_FALLBACK

    branch_email = _render_branch_email(ctx, previous_minor, next_minor=None)
    ctx.interaction_comment = ctx.render(
        "create_branch_pause",
        progress=you_are_here(ctx.responder, ctx.registry, ctx.status.pause()),
        previous_minor=previous_minor,
        branch_email=branch_email,
    )
    return True


def should_continue_after_pause(ctx: StepContext) -> bool:
    return Command.AUTO.matches(ctx.comment)


def should_skip_after_pause(ctx: StepContext) -> bool:
    return Command.MANUAL.matches(ctx.comment)


def _ensure_branch(gh: GitHubClient, branch: str, main_branch: str) -> None:
    if gh.get_branch_sha(branch) is not None:
        logger.info(f"Branch {branch} already exists")
        return

    sha = gh.get_branch_sha(main_branch)
    if sha is None:
        raise InvalidStateError(f"Unable to find branch {main_branch} to create {branch} from")

    gh.create_ref(f"refs/heads/{branch}", sha)
    logger.info(f"Created branch {branch} at {sha[:8]}")


def _ensure_milestones(gh: GitHubClient, release: ReleaseInformation, next_minor: str) -> None:
    milestones = gh.list_milestones("open")

    if find_milestone(milestones, release.version) is None:
        # the version milestone does not exist, rename the "X.Y - main" one
        main_milestone_title = release.branch + config.MAIN_MILESTONE_SUFFIX
        main_milestone = find_milestone(milestones, main_milestone_title)
        if main_milestone is None:
            raise InvalidStateError(
                f"Milestone {release.version} does not exist and we were unable to find "
                f"milestone {main_milestone_title} to rename it"
            )
        gh.update_milestone_title(main_milestone.number, release.version)
        logger.info(f"Renamed milestone {main_milestone_title} to {release.version}")

    next_milestone_title = next_minor + config.MAIN_MILESTONE_SUFFIX
    if find_milestone(milestones, next_milestone_title) is None:
        gh.create_milestone(next_milestone_title)
        logger.info(f"Created milestone {next_milestone_title}")


def _ensure_backport_labels(gh: GitHubClient, previous_backport_label: str) -> None:
    if gh.get_label(previous_backport_label) is None:
        if gh.get_label(config.BACKPORT_LABEL) is None:
            raise InvalidStateError(
                f"Neither {previous_backport_label} nor {config.BACKPORT_LABEL} labels exist"
            )
        gh.rename_label(config.BACKPORT_LABEL, previous_backport_label)
        logger.info(f"Renamed label {config.BACKPORT_LABEL} to {previous_backport_label}")

    if gh.get_label(config.BACKPORT_LABEL) is None:
        gh.create_label(config.BACKPORT_LABEL, config.BACKPORT_LABEL_COLOR)
        logger.info(f"Created label {config.BACKPORT_LABEL}")


def _relabel_pull_requests(gh: GitHubClient, previous_backport_label: str) -> int:
    relabeled = 0
    for pull_request in gh.search_pull_requests(previous_backport_label, state="open"):
        if config.BACKPORT_LABEL in pull_request.labels:
            continue
        gh.add_labels(pull_request.number, [config.BACKPORT_LABEL])
        relabeled += 1
    return relabeled


def _render_branch_email(ctx: StepContext, previous_minor: str, next_minor: Optional[str]) -> str:
    context = release_context(
        ctx.settings,
        ctx.release,
        previous_minor=previous_minor,
        next_minor=next_minor,
    )
    return ctx.responder.render("branch_email", context)


def run(ctx: StepContext) -> StepResult:
    gh = ctx.gh
    release = ctx.release

    if not release.version:
        raise InvalidStateError("The version must be known before creating the branch")

    next_minor = get_next_minor(release.branch)

    _ensure_branch(gh, release.branch, ctx.settings.main_branch)
    _ensure_milestones(gh, release, next_minor)

    previous_minor = get_previous_minor_from_tags(gh, release.branch)
    if previous_minor is None:
        raise InvalidStateError(f"Unable to determine the minor preceding {release.branch}")
    previous_backport_label = config.BACKPORT_LABEL_FORMAT.format(branch=previous_minor)

    _ensure_backport_labels(gh, previous_backport_label)
    relabeled = _relabel_pull_requests(gh, previous_backport_label)
    logger.info(f"Added {config.BACKPORT_LABEL} to {relabeled} pull requests")

    comment = ctx.render(
        "create_branch_done",
        previous_minor=previous_minor,
        next_minor=next_minor,
        branch_email=_render_branch_email(ctx, previous_minor, next_minor),
    )
    return StepResult(comments=[comment])


CREATE_BRANCH = StepDefinition(
    name=StepName.CREATE_BRANCH,
    description="Create the branch",
    run=run,
    should_skip=should_skip,
    should_pause=should_pause,
    should_continue_after_pause=should_continue_after_pause,
    should_skip_after_pause=should_skip_after_pause,
)
