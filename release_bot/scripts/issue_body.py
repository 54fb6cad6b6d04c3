"""
Release issue body handling for the release bot.

The release issue carries the whole persisted state of a release. The
operator fills an issue form (branch, qualifier, major) and the bot keeps
the release descriptor and the progress cursor in reserved sections of
the same body:

    <!-- BEGIN:RELEASE_STATUS -->
    <details><summary>Release status</summary>

    ```yaml
    status: started
    ...
    ```

    </details>
    <!-- END:RELEASE_STATUS -->
"""

import logging
import re
from typing import Any, Dict, Optional

import yaml

from . import config
from .errors import InvalidStateError
from .github_client import GitHubClient
from .release_information import ReleaseInformation
from .release_status import ReleaseStatus

logger = logging.getLogger(__name__)

# Pattern for matching sections (use .format(name=section_name))
SECTION_PATTERN = r"<!-- BEGIN:{name} -->\n(.*?)\n<!-- END:{name} -->"
YAML_BLOCK_PATTERN = re.compile(r"```yaml\n(.*?)\n```", re.DOTALL)

# Issue form headings
FORM_FIELD_PATTERN = re.compile(r"^###[ \t]+(.+?)[ \t]*$\n(.*?)(?=^###\s|\Z)", re.MULTILINE | re.DOTALL)
FORM_NO_RESPONSE = "_No response_"
FORM_CHECKED_PATTERN = re.compile(r"^\s*-\s*\[[xX]\]", re.MULTILINE)

SECTION_TITLES = {
    config.RELEASE_INFORMATION_SECTION: "Release information",
    config.RELEASE_STATUS_SECTION: "Release status",
}


class YamlSerializer:
    """
    YAML serialization settings for persisted records.

    Constructed once at start-up and passed to whatever persists the
    release. Loading is lenient: unknown keys are left to the record
    classes, which ignore them.
    """

    def __init__(self, sort_keys: bool = False, allow_unicode: bool = True):
        self.sort_keys = sort_keys
        self.allow_unicode = allow_unicode

    def dump(self, data: Dict[str, Any]) -> str:
        return yaml.safe_dump(
            data,
            default_flow_style=False,
            sort_keys=self.sort_keys,
            allow_unicode=self.allow_unicode,
        ).rstrip("\n")

    def load(self, content: str) -> Dict[str, Any]:
        """
        Parse a YAML mapping.

        Raises:
            InvalidStateError: If the content is not valid YAML or not a mapping
        """
        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise InvalidStateError(f"Invalid YAML in release issue: {e}")

        if not isinstance(data, dict):
            raise InvalidStateError("Persisted release data must be a YAML mapping")
        return data


def get_section_content(body: str, section: str) -> Optional[str]:
    """
    Extract the content of a reserved section from the issue body.

    Returns:
        Section content if found, None otherwise
    """
    pattern = SECTION_PATTERN.format(name=section)
    match = re.search(pattern, body, flags=re.DOTALL)
    return match.group(1) if match else None


def update_section(body: str, section: str, content: str) -> str:
    """
    Replace the content of a reserved section, appending the section at the
    end of the body when it does not exist yet.
    """
    replacement = f"<!-- BEGIN:{section} -->\n{content}\n<!-- END:{section} -->"
    pattern = SECTION_PATTERN.format(name=section)

    # the replacement is a function so backslashes in content are kept as is
    updated, count = re.subn(pattern, lambda _: replacement, body, flags=re.DOTALL)
    if count:
        return updated

    return f"{body.rstrip()}\n\n{replacement}\n"


def parse_release_form(body: str) -> ReleaseInformation:
    """
    Build the initial release descriptor from the issue form.

    Expected fields: "Branch" (required), "Qualifier", "Version" and a
    "Major version" checkbox.

    Raises:
        InvalidStateError: If the branch is missing
    """
    # reserved sections are not part of the form
    form = body.split("<!-- BEGIN:", 1)[0]

    fields = {}
    for match in FORM_FIELD_PATTERN.finditer(form):
        fields[match.group(1).strip().lower()] = match.group(2).strip()

    def value(name: str) -> str:
        raw = fields.get(name, "")
        if raw == FORM_NO_RESPONSE:
            return ""
        lines = [line.strip() for line in raw.splitlines() if line.strip()]
        return lines[0] if lines else ""

    branch = value("branch")
    if not branch:
        raise InvalidStateError("The release issue does not define a branch")

    return ReleaseInformation(
        version=value("version") or None,
        branch=branch,
        qualifier=value("qualifier"),
        major=bool(FORM_CHECKED_PATTERN.search(fields.get("major version", ""))),
        maintenance=False,
    )


class IssueBodyStore:
    """
    Persists the release descriptor and status in the release issue body.

    The issue is only updated when the rendered body differs from the
    current one, so saving an unchanged release costs no API call.
    """

    def __init__(
        self,
        github_client: GitHubClient,
        issue_number: int,
        body: str,
        serializer: Optional[YamlSerializer] = None
    ):
        """
        Initialize the store.

        Args:
            github_client: GitHubClient used to update the issue
            issue_number: Release issue number
            body: Current issue body
            serializer: YamlSerializer for the persisted records
        """
        self.gh = github_client
        self.issue_number = issue_number
        self.body = body or ""
        self.serializer = serializer or YamlSerializer()

    def _load_section(self, section: str) -> Optional[Dict[str, Any]]:
        content = get_section_content(self.body, section)
        if content is None:
            return None

        match = YAML_BLOCK_PATTERN.search(content)
        if not match:
            raise InvalidStateError(f"Section {section} of issue #{self.issue_number} has no YAML block")
        return self.serializer.load(match.group(1))

    def _render_section(self, section: str, data: Dict[str, Any]) -> str:
        return (
            f"<details><summary>{SECTION_TITLES[section]}</summary>\n\n"
            f"```yaml\n{self.serializer.dump(data)}\n```\n\n"
            f"</details>"
        )

    def load_release_information(self) -> Optional[ReleaseInformation]:
        data = self._load_section(config.RELEASE_INFORMATION_SECTION)
        return ReleaseInformation.from_dict(data) if data is not None else None

    def load_status(self) -> Optional[ReleaseStatus]:
        data = self._load_section(config.RELEASE_STATUS_SECTION)
        return ReleaseStatus.from_dict(data) if data is not None else None

    def save(self, release: ReleaseInformation, status: ReleaseStatus) -> bool:
        """
        Write the release descriptor and status to the issue body.

        Returns:
            True if the issue was updated, False if nothing changed

        Raises:
            GitHubClientError: If the update fails
        """
        body = update_section(
            self.body,
            config.RELEASE_INFORMATION_SECTION,
            self._render_section(config.RELEASE_INFORMATION_SECTION, release.to_dict()),
        )
        body = update_section(
            body,
            config.RELEASE_STATUS_SECTION,
            self._render_section(config.RELEASE_STATUS_SECTION, status.to_dict()),
        )

        if body == self.body:
            logger.info(f"Release issue #{self.issue_number} is up to date")
            return False

        self.gh.update_issue(self.issue_number, body=body)
        self.body = body
        logger.info(
            f"Saved release status {status.current_step}/{status.current_step_status.value} "
            f"to issue #{self.issue_number}"
        )
        return True
