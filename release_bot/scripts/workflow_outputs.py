"""
Workflow outputs for the release bot.

Exposes the release state to the invoking GitHub Actions workflow through
the GITHUB_OUTPUT file.
"""

import uuid
from typing import Dict

from . import config
from .release_information import ReleaseInformation
from .release_status import ReleaseStatus


def build_outputs(release: ReleaseInformation, status: ReleaseStatus) -> Dict[str, str]:
    """
    Build the named outputs describing a release and its progress.

    The interaction comment is added by the orchestrator only when a
    step paused during the pass.
    """
    return {
        config.OUTPUT_BRANCH: release.branch,
        config.OUTPUT_QUALIFIER: release.qualifier,
        config.OUTPUT_MAJOR: str(release.major).lower(),
        config.OUTPUT_VERSION: release.version or "",
        config.OUTPUT_MAINTENANCE: str(release.maintenance).lower(),
        config.OUTPUT_STATUS: status.status.value,
        config.OUTPUT_CURRENT_STEP: status.current_step,
        config.OUTPUT_CURRENT_STEP_STATUS: status.current_step_status.value,
        config.OUTPUT_ERROR: status.error or "",
    }


def write_outputs(path: str, outputs: Dict[str, str]) -> None:
    """
    Append outputs to a GITHUB_OUTPUT file.

    Every value uses a distinct heredoc delimiter so that multiline values
    (comments, error details) survive.
    """
    with open(path, "a") as f:
        for name, value in outputs.items():
            delimiter = f"EOF-{uuid.uuid4()}"
            f.write(f"{name}<<{delimiter}\n")
            f.write(f"{value}\n")
            f.write(f"{delimiter}\n")

