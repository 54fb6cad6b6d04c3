"""
Progress marker for release issue comments.

Renders the "Where am I?" list embedded in every bot comment, derived
from the step registry and the persisted cursor.
"""

from typing import Any, Dict, List

from .bot_responder import BotResponder
from .release_status import ReleaseStatus, Status, StepStatus

ICON_DONE = ":white_check_mark:"
ICON_SKIPPED = ":fast_forward:"
ICON_IN_PROGRESS = ":gear:"
ICON_PAUSED = ":pause_button:"
ICON_FAILED = ":x:"
ICON_PENDING = ":hourglass_flowing_sand:"

CURRENT_STEP_ICONS = {
    StepStatus.INIT: ICON_IN_PROGRESS,
    StepStatus.STARTED: ICON_IN_PROGRESS,
    StepStatus.PAUSED: ICON_PAUSED,
    StepStatus.COMPLETED: ICON_DONE,
    StepStatus.SKIPPED: ICON_SKIPPED,
    StepStatus.FAILED: ICON_FAILED,
}


def progress_steps(registry: Any, status: ReleaseStatus) -> List[Dict[str, str]]:
    """
    Compute the icon of every step of the registry.

    Steps before the cursor are done, the current step reflects its
    status and the following steps are pending.
    """
    current_index = registry.index_of(status.current_step)
    steps = []
    for index, step in enumerate(registry):
        if index < current_index:
            icon = ICON_DONE
        elif index == current_index:
            icon = CURRENT_STEP_ICONS[status.current_step_status]
            if status.status == Status.COMPLETED and status.current_step_status != StepStatus.SKIPPED:
                icon = ICON_DONE
        else:
            icon = ICON_PENDING
        steps.append({"icon": icon, "description": step.description})
    return steps


def you_are_here(responder: BotResponder, registry: Any, status: ReleaseStatus) -> str:
    """Render the progress marker for the given status."""
    return responder.render("progress", {"steps": progress_steps(registry, status)})
