"""
Release orchestrator for the release bot.

This module provides the state machine that advances a release through
the step registry. It is invoked once per event (issue opened, comment
posted, manual dispatch) and resumes from the persisted cursor.

Per step:
    PENDING → SKIPPED | PAUSED | RUNNING
    PAUSED  → SKIPPED (operator handled it) | RUNNING (operator approved)
    RUNNING → DONE | FAILED (terminal for the release)
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from . import config
from .bot_responder import BotResponder
from .config import Settings
from .context_builder import release_context
from .errors import InvalidStateError, ReleaseBotError
from .github_client import GitHubClient, GitHubClientError
from .progress import you_are_here
from .release_information import ReleaseInformation
from .release_status import ReleaseStatus, StepStatus
from .step_registry import REGISTRY, StepRegistry
from .steps import ErrorKind, StepContext, StepDefinition, StepError, StepResult
from .workflow_outputs import build_outputs

logger = logging.getLogger(__name__)


def classify_error(error: Exception) -> StepError:
    """Turn an exception raised while handling a step into a StepError."""
    if isinstance(error, InvalidStateError):
        kind = ErrorKind.INVALID_STATE
    elif isinstance(error, InterruptedError):
        kind = ErrorKind.INTERRUPTED
    elif isinstance(error, (GitHubClientError, OSError)):
        kind = ErrorKind.REMOTE
    elif isinstance(error, ReleaseBotError):
        kind = ErrorKind.INVALID_STATE
    else:
        logger.error("Unexpected error while handling the release", exc_info=error)
        kind = ErrorKind.UNEXPECTED
    return StepError(kind=kind, message=str(error))


@dataclass
class ReleaseEvent:
    """
    Event that triggered an invocation.

    Attributes:
        name: Event name (e.g., "issues", "issue_comment", "workflow_dispatch")
        comment_body: Body of the comment that triggered the event, if any
        comment_author: Login of the comment author, if any
    """
    name: str
    comment_body: Optional[str] = None
    comment_author: Optional[str] = None


@dataclass
class OrchestratorResult:
    """
    Result of one orchestrator pass.

    Attributes:
        release: Release descriptor after the pass
        status: Status after the pass (already persisted)
        comments: Comments to post on the release issue, in order
        outputs: Named outputs for the invoking workflow
        error: Failure of the step that ran, if any
    """
    release: ReleaseInformation
    status: ReleaseStatus
    comments: List[str] = field(default_factory=list)
    outputs: Dict[str, str] = field(default_factory=dict)
    error: Optional[StepError] = None

    @property
    def failed(self) -> bool:
        return self.error is not None


class ReleaseOrchestrator:
    """
    Advances a release through the step registry.

    The orchestrator is the only writer of the release status. It persists
    the status through the store before running a step and at the end of
    every pass, including passes where nothing changed or an error escaped.
    """

    def __init__(
        self,
        github_client: GitHubClient,
        settings: Settings,
        store: Any,
        registry: StepRegistry = REGISTRY,
        bot_responder: Optional[BotResponder] = None
    ):
        """
        Initialize the orchestrator.

        Args:
            github_client: GitHubClient handed to the steps
            settings: Process settings
            store: Persists the release (anything with save(release, status))
            registry: Ordered steps of the release
            bot_responder: BotResponder for comments (default templates if omitted)
        """
        self.gh = github_client
        self.settings = settings
        self.store = store
        self.registry = registry
        self.bot = bot_responder or BotResponder()

    def handle(
        self,
        event: ReleaseEvent,
        issue: Dict[str, Any],
        release: ReleaseInformation,
        status: ReleaseStatus
    ) -> OrchestratorResult:
        """
        Run one pass of the state machine for an event.

        Args:
            event: Triggering event
            issue: Release issue (dict as returned by GitHubClient.get_issue)
            release: Persisted release descriptor
            status: Persisted release status

        Returns:
            OrchestratorResult with the new state and the output to emit
        """
        initial_status = status
        result = OrchestratorResult(release=release, status=status)

        try:
            if status.is_terminal:
                logger.info(f"Release {release.identifier} is {status.status.value}, ignoring {event.name} event")
            else:
                try:
                    self._advance(event, issue, result)
                except Exception as e:
                    # raised by a predicate or the registry, outside of any run
                    self._fail(result.status.current_step, classify_error(e), result)
        finally:
            if result.status != initial_status:
                result.status = result.status.with_workflow_run_id(self.settings.run_id)
            self.store.save(result.release, result.status)

        result.outputs.update(build_outputs(result.release, result.status))
        return result

    def _context(self, event: ReleaseEvent, issue: Dict[str, Any], result: OrchestratorResult) -> StepContext:
        return StepContext(
            release=result.release,
            status=result.status,
            issue=issue,
            comment=event.comment_body,
            gh=self.gh,
            settings=self.settings,
            responder=self.bot,
            registry=self.registry,
        )

    def _advance(self, event: ReleaseEvent, issue: Dict[str, Any], result: OrchestratorResult) -> None:
        while True:
            status = result.status
            step = self.registry.get(status.current_step)
            ctx = self._context(event, issue, result)

            if status.awaiting_resume:
                if step.should_skip_after_pause(ctx):
                    logger.info(f"Step {step.name.value} handled manually, skipping it")
                    if not self._complete(step, StepStatus.SKIPPED, result):
                        return
                    continue

                if not step.should_continue_after_pause(ctx):
                    logger.info(f"Step {step.name.value} is paused, ignoring {event.name} event")
                    return

                logger.info(f"Resuming step {step.name.value}")

            elif status.current_step_status == StepStatus.STARTED:
                # a previous pass died while running the step
                logger.info(f"Running step {step.name.value} again")

            elif step.should_skip(ctx):
                logger.info(f"Skipping step {step.name.value}")
                if not self._complete(step, StepStatus.SKIPPED, result):
                    return
                continue

            elif step.should_pause(ctx):
                logger.info(f"Pausing at step {step.name.value}")
                result.status = status.pause()
                if ctx.interaction_comment:
                    result.comments.append(ctx.interaction_comment)
                    result.outputs[config.OUTPUT_INTERACTION_COMMENT] = ctx.interaction_comment
                return

            if not self._run(step, ctx, result):
                return

            if not self._complete(step, StepStatus.COMPLETED, result) or step.halt_after_run:
                return

    def _run(self, step: StepDefinition, ctx: StepContext, result: OrchestratorResult) -> bool:
        """Run a step, recording a failure on the result. Returns True on success."""
        result.status = result.status.start_step().with_workflow_run_id(self.settings.run_id)
        ctx.status = result.status
        # a pass that dies from here on leaves the step started for the next pass
        self.store.save(result.release, result.status)

        logger.info(f"Running step {step.name.value}")
        try:
            step_result = step.run(ctx)
        except Exception as e:
            step_result = StepResult(exit_code=1, error=classify_error(e))

        if not step_result.success:
            self._fail(step.name.value, step_result.error, result)
            return False

        if step_result.release is not None:
            result.release = step_result.release
        result.comments.extend(step_result.comments)
        logger.info(f"Step {step.name.value} completed with exit code {step_result.exit_code}")
        return True

    def _fail(self, step_name: str, error: StepError, result: OrchestratorResult) -> None:
        logger.error(f"Step {step_name} failed ({error.kind.value}): {error.message}")
        result.error = error
        result.status = result.status.fail(error.message)

        try:
            step_description = self.registry.get(step_name).description
            progress = you_are_here(self.bot, self.registry, result.status)
        except InvalidStateError:
            # cursor points outside the registry
            step_description = step_name
            progress = ""

        context = release_context(
            self.settings,
            result.release,
            step_description=step_description,
            error_message=error.message,
            error_kind=error.kind.value,
            progress=progress,
        )
        result.comments.append(
            self.bot.render_with_marker("step_failed", context, result.release.identifier)
        )

    def _complete(self, step: StepDefinition, step_status: StepStatus, result: OrchestratorResult) -> bool:
        """Move the cursor past a step. Returns False when the release is over."""
        next_step = self.registry.next_after(step.name.value)
        result.status = result.status.advance(
            next_step.name.value if next_step else None,
            step_status,
        )

        if next_step is not None:
            return True

        logger.info(f"Release {result.release.identifier} completed")
        context = release_context(
            self.settings,
            result.release,
            progress=you_are_here(self.bot, self.registry, result.status),
        )
        result.comments.append(
            self.bot.render_with_marker("release_completed", context, result.release.identifier)
        )
        return False
