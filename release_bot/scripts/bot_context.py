"""
Bot message context for the release bot.

Provides the unified BotContext dataclass that carries all data needed
by bot message templates: the release descriptor, the repository
settings and the step-specific values (next/previous minor, errors).
"""

import urllib.parse
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List

from . import config


@dataclass
class BotContext:
    """
    Unified context for all bot message rendering.

    Every field has a type-appropriate default so that templates can render
    safely at any step. Boolean flags and URLs are derived automatically
    from string fields by derive_flags().
    """

    # Repository fields
    project_name: str = ""
    repository: str = ""
    repository_url: str = ""
    main_branch: str = config.DEFAULT_MAIN_BRANCH
    mailing_list: str = ""
    chat_url: str = ""

    # Release fields
    branch: str = ""
    version: str = ""
    qualifier: str = ""
    major: bool = False
    maintenance: bool = False
    is_first_cr: bool = False

    # Branching fields
    next_minor: str = ""
    previous_minor: str = ""
    backport_label: str = config.BACKPORT_LABEL
    previous_backport_label: str = ""
    # list of dicts with keys: branch, backport_label
    lts_branches: List[Dict[str, str]] = field(default_factory=list)

    # Commands
    auto_command: str = ""
    manual_command: str = ""

    # Step fields
    step_description: str = ""
    error_message: str = ""
    error_kind: str = ""

    # Pre-rendered fragments
    progress: str = ""
    branch_email: str = ""

    # Display fields (derived from repository_url when empty)
    workflow_run_url: str = ""
    milestones_url: str = ""
    new_milestone_url: str = ""
    previous_backport_search_url: str = ""

    # Derived boolean flags (set by derive_flags())
    has_next_minor: bool = False
    has_mailing_list: bool = False
    has_chat_url: bool = False
    has_workflow_run_url: bool = False
    has_lts_branches: bool = False

    def derive_flags(self) -> None:
        """Compute boolean flags and derived fields from string fields."""
        if not self.previous_backport_label and self.previous_minor:
            self.previous_backport_label = config.BACKPORT_LABEL_FORMAT.format(branch=self.previous_minor)
        if self.repository_url:
            if not self.milestones_url:
                self.milestones_url = f"{self.repository_url}/milestones"
            if not self.new_milestone_url:
                self.new_milestone_url = f"{self.repository_url}/milestones/new"
            if not self.previous_backport_search_url and self.previous_backport_label:
                query = urllib.parse.quote_plus(f"is:pr is:open label:{self.previous_backport_label}")
                self.previous_backport_search_url = f"{self.repository_url}/pulls?q={query}"
        self.lts_branches = [
            {
                "branch": entry["branch"],
                "backport_label": entry.get("backport_label")
                or config.BACKPORT_LABEL_FORMAT.format(branch=entry["branch"]),
            }
            for entry in self.lts_branches
        ]
        self.has_next_minor = bool(self.next_minor)
        self.has_mailing_list = bool(self.mailing_list)
        self.has_chat_url = bool(self.chat_url)
        self.has_workflow_run_url = bool(self.workflow_run_url)
        self.has_lts_branches = bool(self.lts_branches)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to a dict suitable for pystache rendering.

        Guarantees:
        - All BotContext fields are present as keys
        - No None values
        - lts_branches entries are preserved as dicts
        """
        return {k: ("" if v is None else v) for k, v in asdict(self).items()}
