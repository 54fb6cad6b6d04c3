"""
GitHub API client wrapper for the release bot.

This module provides a thin wrapper around the GitHub API operations
needed by the release steps. It uses the `gh` CLI for authentication
and API access.
"""

import json
import os
import subprocess
import urllib.parse
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class Milestone:
    """Represents a GitHub milestone."""
    number: int
    title: str
    state: str = "open"


@dataclass
class PullRequest:
    """Represents a GitHub pull request found through search."""
    number: int
    title: str
    labels: List[str] = field(default_factory=list)


class GitHubClientError(Exception):
    """Base exception for GitHub client errors."""
    pass


def _is_not_found(error: GitHubClientError) -> bool:
    error_msg = str(error).lower()
    return "404" in error_msg or "not found" in error_msg


class GitHubClient:
    """
    GitHub API client for release bot operations.

    Uses the `gh` CLI for authentication and API access.
    All methods are repository-scoped.
    """

    def __init__(self, repo: str, token: Optional[str] = None):
        """
        Initialize the GitHub client.

        Args:
            repo: Repository in format "owner/name"
            token: Optional GitHub token (uses gh CLI auth if not provided)
        """
        self.repo = repo
        self.token = token

    def _run_gh(self, args: List[str], check: bool = True) -> str:
        """
        Run a gh CLI command and return output.

        Args:
            args: Command arguments (without 'gh')
            check: Whether to raise on non-zero exit code

        Returns:
            Command output as string

        Raises:
            GitHubClientError: If command fails and check=True
        """
        cmd = ["gh"] + args
        if self.token:
            # Extend environment with GH_TOKEN, don't replace it
            env = {**os.environ, "GH_TOKEN": self.token}
        else:
            env = None

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                check=check,
                env=env
            )
            return result.stdout
        except subprocess.CalledProcessError as e:
            raise GitHubClientError(f"gh command failed: {e.stderr}")

    def _run_gh_json(self, args: List[str]) -> Any:
        output = self._run_gh(args)
        try:
            return json.loads(output) if output.strip() else None
        except json.JSONDecodeError as e:
            raise GitHubClientError(f"Failed to parse gh output: {e}")

    # -------------------------------------------------------------------------
    # Issue Operations
    # -------------------------------------------------------------------------

    def get_issue(self, issue_number: int) -> dict:
        """
        Get issue details including body and labels.

        Args:
            issue_number: The issue number

        Returns:
            Dict with issue details (number, title, body, labels, html_url, state)

        Raises:
            GitHubClientError: If issue doesn't exist or API fails
        """
        issue = self._run_gh_json([
            "api",
            f"repos/{self.repo}/issues/{issue_number}",
        ])
        if not issue:
            raise GitHubClientError(f"Empty response for issue #{issue_number}")

        return {
            "number": issue["number"],
            "title": issue["title"],
            "body": issue.get("body") or "",
            "labels": issue.get("labels", []),
            "html_url": issue["html_url"],
            "state": issue["state"]
        }

    def get_latest_comment(self, issue_number: int) -> Optional[Dict[str, Any]]:
        """
        Get the most recent comment of an issue.

        Args:
            issue_number: The issue number

        Returns:
            Dict with id, body and author, or None if the issue has no comments
        """
        output = self._run_gh([
            "api",
            f"repos/{self.repo}/issues/{issue_number}/comments",
            "--paginate",
            "--jq", ".[] | {id: .id, body: .body, author: .user.login} | @json"
        ])

        # One JSON document per line, oldest first
        lines = [line for line in output.strip().split('\n') if line.strip()]
        if not lines:
            return None

        try:
            latest = json.loads(lines[-1])
        except json.JSONDecodeError as e:
            raise GitHubClientError(f"Failed to parse comment: {e}")

        return {
            "id": latest["id"],
            "body": latest.get("body") or "",
            "author": latest.get("author") or "",
        }

    def comment_on_issue(self, issue_number: int, body: str) -> None:
        """
        Post a comment on an issue.

        Raises:
            GitHubClientError: If posting fails
        """
        self._run_gh([
            "issue", "comment", str(issue_number),
            "--repo", self.repo,
            "--body", body
        ])

    def update_issue(
        self,
        issue_number: int,
        title: Optional[str] = None,
        body: Optional[str] = None
    ) -> dict:
        """
        Update an existing issue's title and/or body.

        Args:
            issue_number: The issue number to update
            title: New title (optional)
            body: New body (optional)

        Returns:
            Dict with updated issue details

        Raises:
            GitHubClientError: If update fails
        """
        args = [
            "api",
            f"repos/{self.repo}/issues/{issue_number}",
            "-X", "PATCH"
        ]

        if title is not None:
            args.extend(["-f", f"title={title}"])
        if body is not None:
            args.extend(["-f", f"body={body}"])

        issue = self._run_gh_json(args)
        return {
            "number": issue["number"],
            "title": issue["title"],
            "body": issue.get("body") or "",
            "labels": issue.get("labels", []),
            "html_url": issue["html_url"],
            "state": issue["state"]
        }

    def add_labels(self, issue_number: int, labels: List[str]) -> None:
        """
        Add labels to an issue or pull request.

        Args:
            issue_number: The issue or pull request number
            labels: List of label names to add

        Raises:
            GitHubClientError: If operation fails
        """
        if not labels:
            return

        # POST to labels endpoint using array syntax for gh api
        args = [
            "api",
            f"repos/{self.repo}/issues/{issue_number}/labels",
            "-X", "POST"
        ]
        for label in labels:
            args.extend(["-f", f"labels[]={label}"])
        self._run_gh(args)

    # -------------------------------------------------------------------------
    # Branch and Tag Operations
    # -------------------------------------------------------------------------

    def get_branch_sha(self, branch: str) -> Optional[str]:
        """
        Get the SHA of a branch head.

        Args:
            branch: Branch name

        Returns:
            Commit SHA, or None if the branch doesn't exist

        Raises:
            GitHubClientError: For errors other than a missing branch
        """
        try:
            output = self._run_gh([
                "api",
                f"repos/{self.repo}/branches/{branch}",
                "--jq", ".commit.sha"
            ])
        except GitHubClientError as e:
            if _is_not_found(e):
                return None
            raise
        return output.strip() or None

    def create_ref(self, ref: str, sha: str) -> dict:
        """Create a git reference (e.g., "refs/heads/3.2") at a commit.

        Raises:
            GitHubClientError: If creation fails
        """
        return self._run_gh_json([
            "api",
            f"repos/{self.repo}/git/refs",
            "-X", "POST",
            "-f", f"ref={ref}",
            "-f", f"sha={sha}"
        ])

    def list_tags(self) -> List[str]:
        """
        List all tag names of the repository.

        Raises:
            GitHubClientError: If listing fails
        """
        output = self._run_gh([
            "api",
            f"repos/{self.repo}/tags",
            "--paginate",
            "--jq", ".[].name"
        ])
        return [name.strip() for name in output.strip().split('\n') if name.strip()]

    # -------------------------------------------------------------------------
    # Milestone Operations
    # -------------------------------------------------------------------------

    def list_milestones(self, state: str = "open") -> List[Milestone]:
        """
        List milestones of the repository.

        Args:
            state: Milestone state ('open', 'closed', 'all')

        Raises:
            GitHubClientError: If listing fails
        """
        output = self._run_gh([
            "api",
            f"repos/{self.repo}/milestones?state={state}&per_page=100",
            "--paginate",
            "--jq", ".[] | {number: .number, title: .title, state: .state} | @json"
        ])

        milestones = []
        for line in output.strip().split('\n'):
            if not line.strip():
                continue
            try:
                data = json.loads(line)
            except json.JSONDecodeError as e:
                raise GitHubClientError(f"Failed to parse milestone: {e}")
            milestones.append(Milestone(
                number=data["number"],
                title=data["title"],
                state=data.get("state", state)
            ))
        return milestones

    def update_milestone_title(self, number: int, title: str) -> None:
        """Rename a milestone.

        Raises:
            GitHubClientError: If update fails
        """
        self._run_gh([
            "api",
            f"repos/{self.repo}/milestones/{number}",
            "-X", "PATCH",
            "-f", f"title={title}"
        ])

    def create_milestone(self, title: str, description: str = "") -> Milestone:
        """Create an open milestone.

        Raises:
            GitHubClientError: If creation fails
        """
        args = [
            "api",
            f"repos/{self.repo}/milestones",
            "-X", "POST",
            "-f", f"title={title}"
        ]
        if description:
            args.extend(["-f", f"description={description}"])

        data = self._run_gh_json(args)
        return Milestone(number=data["number"], title=data["title"], state=data.get("state", "open"))

    # -------------------------------------------------------------------------
    # Label Operations
    # -------------------------------------------------------------------------

    def get_label(self, label_name: str) -> Optional[Dict[str, Any]]:
        """
        Get a repository label by name.

        Args:
            label_name: The label name to look up

        Returns:
            Label dict with 'name', 'color', 'description' if found, None otherwise

        Raises:
            GitHubClientError: For errors other than a missing label
        """
        encoded_name = urllib.parse.quote(label_name, safe='')

        try:
            label = self._run_gh_json([
                "api",
                f"repos/{self.repo}/labels/{encoded_name}"
            ])
        except GitHubClientError as e:
            if _is_not_found(e):
                return None
            raise

        if not label:
            return None
        return {
            "name": label["name"],
            "color": label.get("color", ""),
            "description": label.get("description") or ""
        }

    def create_label(
        self,
        name: str,
        color: str,
        description: str = ""
    ) -> Dict[str, Any]:
        """
        Create a repository label.

        Args:
            name: Label name
            color: Hex color without # (e.g., "7fe8cd")
            description: Optional description

        Returns:
            Created label dict

        Raises:
            GitHubClientError: If creation fails
        """
        args = [
            "api",
            f"repos/{self.repo}/labels",
            "-X", "POST",
            "-f", f"name={name}",
            "-f", f"color={color}"
        ]
        if description:
            args.extend(["-f", f"description={description}"])

        label = self._run_gh_json(args)
        return {
            "name": label["name"],
            "color": label.get("color", ""),
            "description": label.get("description") or ""
        }

    def rename_label(self, old_name: str, new_name: str) -> None:
        """
        Rename a repository label, keeping it on every issue and pull request.

        Raises:
            GitHubClientError: If the label doesn't exist or the update fails
        """
        encoded_name = urllib.parse.quote(old_name, safe='')
        self._run_gh([
            "api",
            f"repos/{self.repo}/labels/{encoded_name}",
            "-X", "PATCH",
            "-f", f"new_name={new_name}"
        ])

    # -------------------------------------------------------------------------
    # Pull Request Operations
    # -------------------------------------------------------------------------

    def search_pull_requests(self, label: str, state: str = "open") -> List[PullRequest]:
        """
        Search pull requests carrying a label.

        Args:
            label: Label name to filter by
            state: Pull request state ('open', 'closed', 'merged', 'all')

        Raises:
            GitHubClientError: If the search fails
        """
        data = self._run_gh_json([
            "pr", "list",
            "--repo", self.repo,
            "--label", label,
            "--state", state,
            "--limit", "1000",
            "--json", "number,title,labels"
        ]) or []

        return [
            PullRequest(
                number=pr["number"],
                title=pr.get("title", ""),
                labels=[label_data["name"] for label_data in pr.get("labels", [])]
            )
            for pr in data
        ]
