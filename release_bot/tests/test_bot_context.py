"""Tests for bot_context.py and context_builder.py."""

import pytest

from release_bot.scripts.bot_context import BotContext
from release_bot.scripts.config import Settings
from release_bot.scripts.context_builder import build_context, release_context
from release_bot.scripts.release_information import ReleaseInformation


@pytest.fixture
def settings():
    return Settings(
        repository="quarkusio/quarkus",
        lts_branches=["3.2", "2.13"],
        mailing_list="dev@example.org",
        run_id=1234,
    )


class TestBotContext:
    """Tests for the BotContext dataclass."""

    def test_default_values(self):
        ctx = BotContext()

        assert ctx.branch == ""
        assert ctx.version == ""
        assert ctx.previous_backport_label == ""
        assert ctx.backport_label == "triage/backport?"
        assert ctx.main_branch == "main"
        assert ctx.lts_branches == []
        assert ctx.major is False
        assert ctx.has_next_minor is False

    def test_derive_flags(self):
        ctx = BotContext(
            repository_url="https://github.com/org/repo",
            next_minor="3.3",
            previous_minor="3.1",
            chat_url="https://chat.example.org",
            lts_branches=[{"branch": "3.2"}],
        )
        ctx.derive_flags()

        assert ctx.has_next_minor is True
        assert ctx.has_chat_url is True
        assert ctx.has_mailing_list is False
        assert ctx.has_lts_branches is True
        assert ctx.previous_backport_label == "triage/backport-3.1?"
        assert ctx.milestones_url == "https://github.com/org/repo/milestones"
        assert ctx.new_milestone_url == "https://github.com/org/repo/milestones/new"
        assert ctx.previous_backport_search_url.startswith("https://github.com/org/repo/pulls?q=")
        assert "triage%2Fbackport-3.1%3F" in ctx.previous_backport_search_url
        assert ctx.lts_branches == [{"branch": "3.2", "backport_label": "triage/backport-3.2?"}]

    def test_explicit_previous_backport_label_is_kept(self):
        ctx = BotContext(previous_minor="3.1", previous_backport_label="custom")
        ctx.derive_flags()
        assert ctx.previous_backport_label == "custom"

    def test_to_dict_has_no_none(self):
        ctx = BotContext()
        ctx.version = None
        result = ctx.to_dict()
        assert result["version"] == ""
        assert set(result) == set(BotContext.__dataclass_fields__)


class TestBuildContext:
    """Tests for build_context()."""

    def test_unknown_kwargs_are_ignored(self):
        result = build_context(branch="3.2", unknown="value")
        assert result["branch"] == "3.2"
        assert "unknown" not in result

    def test_none_values_fall_back_to_defaults(self):
        result = build_context(version=None, backport_label=None)
        assert result["version"] == ""
        assert result["backport_label"] == "triage/backport?"

    def test_flags_are_derived(self):
        result = build_context(mailing_list="dev@example.org")
        assert result["has_mailing_list"] is True


class TestReleaseContext:
    """Tests for release_context()."""

    def test_fills_settings_and_release(self, settings):
        release = ReleaseInformation(version="3.2.0.CR1", branch="3.2", qualifier="CR1")

        result = release_context(settings, release)

        assert result["project_name"] == "Quarkus"
        assert result["repository_url"] == "https://github.com/quarkusio/quarkus"
        assert result["workflow_run_url"] == "https://github.com/quarkusio/quarkus/actions/runs/1234"
        assert result["has_workflow_run_url"] is True
        assert result["version"] == "3.2.0.CR1"
        assert result["is_first_cr"] is True
        assert result["auto_command"] == "/auto"
        assert result["manual_command"] == "/manual"
        assert [entry["branch"] for entry in result["lts_branches"]] == ["3.2", "2.13"]

    def test_unknown_version_renders_empty(self, settings):
        release = ReleaseInformation(version=None, branch="3.2", qualifier="Final")
        assert release_context(settings, release)["version"] == ""

    def test_kwargs_override(self, settings):
        release = ReleaseInformation(version="3.2.0.CR1", branch="3.2", qualifier="CR1")
        result = release_context(settings, release, next_minor="3.3", progress="marker")
        assert result["next_minor"] == "3.3"
        assert result["has_next_minor"] is True
        assert result["progress"] == "marker"
