#!/usr/bin/env python3
"""
Entry point of the release workflow.

Runs one pass of the release orchestrator for the event that triggered the
GitHub Actions workflow, posts the resulting comments on the release issue
and exposes the release state as workflow outputs.

The event is read from environment variables to keep the workflow file
simple:

    RELEASE_EVENT_NAME      Event name (issues, issue_comment, workflow_dispatch)
    RELEASE_COMMENT_BODY    Body of the triggering comment, if any
    RELEASE_COMMENT_AUTHOR  Login of the comment author, if any

Usage:
    python -m release_bot.scripts.release_workflow --issue 42
"""

import argparse
import logging
import os
import sys
from typing import Optional

from .config import Settings
from .github_client import GitHubClient
from .issue_body import IssueBodyStore, YamlSerializer, parse_release_form
from .orchestrator import OrchestratorResult, ReleaseEvent, ReleaseOrchestrator
from .release_status import ReleaseStatus
from .step_registry import REGISTRY, StepRegistry
from .workflow_outputs import write_outputs

logger = logging.getLogger(__name__)

COMMENT_EVENT = "issue_comment"


def event_from_env(gh: GitHubClient, issue_number: int, environ=None) -> ReleaseEvent:
    """
    Build the triggering event from the environment.

    Comment events without a body in the environment fall back to the
    latest comment of the release issue.
    """
    env = os.environ if environ is None else environ

    event = ReleaseEvent(
        name=env.get("RELEASE_EVENT_NAME", "workflow_dispatch"),
        comment_body=env.get("RELEASE_COMMENT_BODY") or None,
        comment_author=env.get("RELEASE_COMMENT_AUTHOR") or None,
    )

    if event.name == COMMENT_EVENT and event.comment_body is None:
        latest = gh.get_latest_comment(issue_number)
        if latest:
            event.comment_body = latest["body"]
            event.comment_author = latest["author"]

    return event


def run_release(
    gh: GitHubClient,
    settings: Settings,
    issue_number: int,
    event: ReleaseEvent,
    serializer: Optional[YamlSerializer] = None,
    registry: StepRegistry = REGISTRY
) -> OrchestratorResult:
    """
    Run one orchestrator pass on a release issue and post its comments.

    A release issue without persisted state starts at the first step of
    the registry, with the descriptor parsed from the issue form.
    """
    issue = gh.get_issue(issue_number)
    store = IssueBodyStore(gh, issue_number, issue["body"], serializer=serializer)

    release = store.load_release_information()
    if release is None:
        release = parse_release_form(issue["body"])
        logger.info(f"Starting release {release.identifier} from issue #{issue_number}")

    status = store.load_status()
    if status is None:
        status = ReleaseStatus.initial(registry.first.name.value, settings.run_id)

    orchestrator = ReleaseOrchestrator(gh, settings, store, registry=registry)
    result = orchestrator.handle(event, issue, release, status)

    for comment in result.comments:
        gh.comment_on_issue(issue_number, comment)

    return result


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Advance a release tracked by a GitHub issue")
    parser.add_argument("--issue", type=int, help="Release issue number (default: RELEASE_ISSUE_NUMBER)")
    parser.add_argument("--output-file", help="File to append outputs to (default: GITHUB_OUTPUT)", default=None)
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=os.environ.get("RELEASE_BOT_LOG_LEVEL", "INFO").upper(),
        format="%(levelname)s %(name)s: %(message)s",
    )

    settings = Settings.from_env()
    issue_number = args.issue or settings.issue_number
    if issue_number is None:
        parser.error("--issue or RELEASE_ISSUE_NUMBER is required")

    gh = GitHubClient(settings.repository, settings.token)
    event = event_from_env(gh, issue_number)

    result = run_release(gh, settings, issue_number, event)

    output_file = args.output_file or os.environ.get("GITHUB_OUTPUT")
    if output_file:
        write_outputs(output_file, result.outputs)

    if result.failed:
        print(f"::error::{result.error.message}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
