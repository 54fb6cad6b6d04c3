"""
Release progress cursor for the release bot.

The ReleaseStatus records which step of the registry is current and where
that step stands. It is persisted in the release issue between invocations
and only ever written by the orchestrator.
"""

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from . import config
from .errors import InvalidStateError


class Status(Enum):
    """
    Overall status of a release.

    State Transition Flow:
        STARTED → COMPLETED
                ↘ FAILED (terminal, needs an operator outside the bot)
    """
    STARTED = config.STATUS_STARTED
    COMPLETED = config.STATUS_COMPLETED
    FAILED = config.STATUS_FAILED


class StepStatus(Enum):
    """
    Status of the current step.

    State Transition Flow:
        INIT → SKIPPED
        INIT → PAUSED → STARTED | SKIPPED
        INIT → STARTED → COMPLETED | FAILED
    """
    INIT = config.STEP_STATUS_INIT
    STARTED = config.STEP_STATUS_STARTED
    PAUSED = config.STEP_STATUS_PAUSED
    COMPLETED = config.STEP_STATUS_COMPLETED
    SKIPPED = config.STEP_STATUS_SKIPPED
    FAILED = config.STEP_STATUS_FAILED


def _now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


@dataclass(frozen=True)
class ReleaseStatus:
    """
    Persisted progress of a release.

    Attributes:
        status: Overall release status
        current_step: Name of the current step in the registry
        current_step_status: Where the current step stands
        updated_at: ISO 8601 timestamp of the last transition
        workflow_run_id: Workflow run that produced this status
        error: Verbatim error detail when the release failed
    """
    status: Status
    current_step: str
    current_step_status: StepStatus
    updated_at: str = ""
    workflow_run_id: Optional[int] = None
    error: Optional[str] = None

    @classmethod
    def initial(cls, first_step: str, workflow_run_id: Optional[int] = None) -> "ReleaseStatus":
        return cls(
            status=Status.STARTED,
            current_step=first_step,
            current_step_status=StepStatus.INIT,
            updated_at=_now(),
            workflow_run_id=workflow_run_id,
        )

    @property
    def awaiting_resume(self) -> bool:
        return self.current_step_status == StepStatus.PAUSED

    @property
    def is_terminal(self) -> bool:
        return self.status in (Status.COMPLETED, Status.FAILED)

    def _transition(self, **changes) -> "ReleaseStatus":
        return replace(self, updated_at=_now(), **changes)

    def pause(self) -> "ReleaseStatus":
        return self._transition(current_step_status=StepStatus.PAUSED)

    def start_step(self) -> "ReleaseStatus":
        return self._transition(current_step_status=StepStatus.STARTED)

    def fail(self, error: str) -> "ReleaseStatus":
        return self._transition(
            status=Status.FAILED,
            current_step_status=StepStatus.FAILED,
            error=error,
        )

    def advance(self, next_step: Optional[str], step_status: StepStatus) -> "ReleaseStatus":
        """
        Move the cursor past the current step.

        Args:
            next_step: Name of the following step, None if the current
                       step is the last one
            step_status: How the current step ended (COMPLETED or SKIPPED)

        Returns:
            Status pointing at the next step, or a completed release
        """
        if step_status not in (StepStatus.COMPLETED, StepStatus.SKIPPED):
            raise InvalidStateError(f"Cannot advance past a step in status {step_status.value}")

        if next_step is None:
            return self._transition(status=Status.COMPLETED, current_step_status=step_status)

        return self._transition(current_step=next_step, current_step_status=StepStatus.INIT)

    def with_workflow_run_id(self, workflow_run_id: Optional[int]) -> "ReleaseStatus":
        if workflow_run_id is None:
            return self
        return replace(self, workflow_run_id=workflow_run_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "current_step": self.current_step,
            "current_step_status": self.current_step_status.value,
            "updated_at": self.updated_at,
            "workflow_run_id": self.workflow_run_id,
            "error": self.error,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReleaseStatus":
        """
        Build a status from persisted data. Unknown keys are ignored.

        Raises:
            InvalidStateError: If a required field is missing or unknown
        """
        try:
            status = Status(data["status"])
            current_step = str(data["current_step"])
            current_step_status = StepStatus(data["current_step_status"])
        except (KeyError, ValueError) as e:
            raise InvalidStateError(f"Invalid release status: {e}")

        workflow_run_id = data.get("workflow_run_id")
        return cls(
            status=status,
            current_step=current_step,
            current_step_status=current_step_status,
            updated_at=str(data.get("updated_at") or ""),
            workflow_run_id=int(workflow_run_id) if workflow_run_id else None,
            error=data.get("error"),
        )
