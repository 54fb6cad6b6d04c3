"""
Central configuration for the release bot scripts.
"""

import os
from dataclasses import dataclass, field
from typing import List, Optional

# Branches
DEFAULT_MAIN_BRANCH = "main"
DEFAULT_LTS_BRANCHES = ["3.2"]

# Milestones
MAIN_MILESTONE_SUFFIX = " - main"

# Labels
BACKPORT_LABEL = "triage/backport?"
BACKPORT_LABEL_COLOR = "7fe8cd"
BACKPORT_LABEL_FORMAT = "triage/backport-{branch}?"

# Release statuses
STATUS_STARTED = "started"
STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"

# Step statuses
STEP_STATUS_INIT = "init"
STEP_STATUS_STARTED = "started"
STEP_STATUS_PAUSED = "paused"
STEP_STATUS_COMPLETED = "completed"
STEP_STATUS_SKIPPED = "skipped"
STEP_STATUS_FAILED = "failed"

# Reserved issue body sections
RELEASE_INFORMATION_SECTION = "RELEASE_INFORMATION"
RELEASE_STATUS_SECTION = "RELEASE_STATUS"

# Workflow outputs
OUTPUT_INTERACTION_COMMENT = "interaction-comment"
OUTPUT_STATUS = "status"
OUTPUT_CURRENT_STEP = "current-step"
OUTPUT_CURRENT_STEP_STATUS = "current-step-status"
OUTPUT_BRANCH = "branch"
OUTPUT_QUALIFIER = "qualifier"
OUTPUT_MAJOR = "major"
OUTPUT_VERSION = "version"
OUTPUT_MAINTENANCE = "maintenance"
OUTPUT_ERROR = "error"


def _split_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class Settings:
    """
    Process-wide settings, built once at start-up and passed explicitly.

    Attributes:
        repository: Repository in format "owner/name"
        token: Optional GitHub token (gh CLI auth is used if not provided)
        issue_number: Number of the release issue being processed
        main_branch: Branch new release branches are created from
        lts_branches: Long-term support branches mentioned in announcements
        project_name: Display name used in announcements
        mailing_list: Optional development mailing list address
        chat_url: Optional link to the development chat stream
        server_url: GitHub server URL
        run_id: Workflow run ID of the current invocation
    """
    repository: str
    token: Optional[str] = None
    issue_number: Optional[int] = None
    main_branch: str = DEFAULT_MAIN_BRANCH
    lts_branches: List[str] = field(default_factory=lambda: list(DEFAULT_LTS_BRANCHES))
    project_name: str = ""
    mailing_list: str = ""
    chat_url: str = ""
    server_url: str = "https://github.com"
    run_id: Optional[int] = None

    def __post_init__(self):
        if not self.project_name:
            self.project_name = self.repository.split("/")[-1].capitalize()

    @property
    def repository_url(self) -> str:
        return f"{self.server_url}/{self.repository}"

    @property
    def workflow_run_url(self) -> str:
        if self.run_id is None:
            return ""
        return f"{self.repository_url}/actions/runs/{self.run_id}"

    @classmethod
    def from_env(cls, environ=None) -> "Settings":
        """
        Build settings from environment variables.

        Raises:
            ValueError: If GITHUB_REPOSITORY is not set or a numeric
                        variable cannot be parsed
        """
        env = os.environ if environ is None else environ

        repository = env.get("GITHUB_REPOSITORY", "")
        if not repository:
            raise ValueError("GITHUB_REPOSITORY must be set")

        issue_number = env.get("RELEASE_ISSUE_NUMBER")
        run_id = env.get("GITHUB_RUN_ID")
        lts_branches = env.get("RELEASE_BOT_LTS_BRANCHES")

        return cls(
            repository=repository,
            token=env.get("GH_TOKEN") or env.get("GITHUB_TOKEN") or None,
            issue_number=int(issue_number) if issue_number else None,
            main_branch=env.get("RELEASE_BOT_MAIN_BRANCH", DEFAULT_MAIN_BRANCH),
            lts_branches=(
                _split_list(lts_branches) if lts_branches is not None
                else list(DEFAULT_LTS_BRANCHES)
            ),
            project_name=env.get("RELEASE_BOT_PROJECT_NAME", ""),
            mailing_list=env.get("RELEASE_BOT_MAILING_LIST", ""),
            chat_url=env.get("RELEASE_BOT_CHAT_URL", ""),
            server_url=env.get("GITHUB_SERVER_URL", "https://github.com"),
            run_id=int(run_id) if run_id else None,
        )
