"""
Step contract for the release bot.

A step is a record of decision predicates plus a run function rather than
a subclass: each StepDefinition names its predicates explicitly and falls
back to the defaults below (never skip, never pause, run immediately).
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from .bot_responder import BotResponder
from .config import Settings
from .context_builder import release_context
from .github_client import GitHubClient
from .progress import you_are_here
from .release_information import ReleaseInformation
from .release_status import ReleaseStatus, StepStatus


class StepName(Enum):
    """Steps of the release process, in execution order."""
    PREREQUISITES = "prerequisites"
    CREATE_BRANCH = "create-branch"
    CORE_RELEASE_PREPARE = "core-release-prepare"


class ErrorKind(Enum):
    """Categories of step failures."""
    INVALID_STATE = "invalid-state"
    REMOTE = "remote"
    INTERRUPTED = "interrupted"
    UNEXPECTED = "unexpected"


@dataclass
class StepError:
    """A step failure, with the error detail kept verbatim."""
    kind: ErrorKind
    message: str


@dataclass
class StepResult:
    """
    Outcome of running a step.

    Attributes:
        exit_code: 0 on success
        release: Corrected release descriptor, None if unchanged
        comments: Comments to post on the release issue
        error: Failure detail, None on success
    """
    exit_code: int = 0
    release: Optional[ReleaseInformation] = None
    comments: List[str] = field(default_factory=list)
    error: Optional[StepError] = None

    @property
    def success(self) -> bool:
        return self.error is None

    @classmethod
    def failure(cls, kind: ErrorKind, message: str, exit_code: int = 1) -> "StepResult":
        return cls(exit_code=exit_code, error=StepError(kind=kind, message=message))


@dataclass
class StepContext:
    """
    Everything a step sees during one evaluation.

    Predicates may stage the comment shown to the operator when the
    step pauses in interaction_comment.
    """
    release: ReleaseInformation
    status: ReleaseStatus
    issue: Dict[str, Any]
    comment: Optional[str]
    gh: GitHubClient
    settings: Settings
    responder: BotResponder
    registry: Any
    interaction_comment: Optional[str] = None

    def progress(self) -> str:
        return you_are_here(self.responder, self.registry, self.status)

    def completed_progress(self) -> str:
        """Progress marker as it reads once the current step has completed."""
        next_step = self.registry.next_after(self.status.current_step)
        completed = self.status.advance(next_step.name.value if next_step else None, StepStatus.COMPLETED)
        return you_are_here(self.responder, self.registry, completed)

    def render(self, template_name: str, release: Optional[ReleaseInformation] = None, **kwargs: Any) -> str:
        """
        Render a bot message for this release, progress marker included.

        Messages rendered while the step runs report their outcome, so the
        marker shows the step as completed.
        """
        release = release or self.release
        if "progress" not in kwargs:
            running = self.status.current_step_status == StepStatus.STARTED
            kwargs["progress"] = self.completed_progress() if running else self.progress()
        context = release_context(self.settings, release, **kwargs)
        return self.responder.render_with_marker(template_name, context, release.identifier)


Predicate = Callable[[StepContext], bool]


def never(ctx: StepContext) -> bool:
    return False


@dataclass(frozen=True)
class StepDefinition:
    """
    One step of the release process.

    Attributes:
        name: Identifier of the step, persisted as the cursor
        description: Human readable name shown in the progress marker
        run: Performs the remote actions; must tolerate partially applied state
        should_skip: Bypass the step entirely
        should_pause: Halt before running and wait for an operator comment
        should_continue_after_pause: Resume and run on this comment
        should_skip_after_pause: The operator handled the step manually
        halt_after_run: Wait for the next event once the step ran
    """
    name: StepName
    description: str
    run: Callable[[StepContext], StepResult]
    should_skip: Predicate = never
    should_pause: Predicate = never
    should_continue_after_pause: Predicate = never
    should_skip_after_pause: Predicate = never
    halt_after_run: bool = True
