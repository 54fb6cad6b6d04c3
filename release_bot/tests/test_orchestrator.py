"""
Unit tests for the release orchestrator.

Most cases use a registry of stub steps whose predicates and run
functions are controlled by the test; the last cases go through the real
release registry.
"""

import pytest
from unittest.mock import Mock

from release_bot.scripts.config import Settings
from release_bot.scripts.errors import InvalidStateError, ReleaseBotError
from release_bot.scripts.github_client import GitHubClientError
from release_bot.scripts.orchestrator import ReleaseEvent, ReleaseOrchestrator
from release_bot.scripts.release_information import ReleaseInformation
from release_bot.scripts.release_status import ReleaseStatus, Status, StepStatus
from release_bot.scripts.step_registry import REGISTRY, StepRegistry
from release_bot.scripts.steps import ErrorKind, StepDefinition, StepName, StepResult

FIRST = StepName.PREREQUISITES
SECOND = StepName.CREATE_BRANCH
THIRD = StepName.CORE_RELEASE_PREPARE


def stub_step(name, run=None, **predicates):
    return StepDefinition(
        name=name,
        description=f"Stub {name.value}",
        run=run or Mock(return_value=StepResult()),
        **predicates
    )


def always(ctx):
    return True


def pausing_step(name, run=None):
    """A step that pauses and resumes on /auto or is skipped on /manual."""
    def should_pause(ctx):
        ctx.interaction_comment = "Reply /auto or /manual"
        return True

    return stub_step(
        name,
        run=run,
        should_pause=should_pause,
        should_continue_after_pause=lambda ctx: ctx.comment == "/auto",
        should_skip_after_pause=lambda ctx: ctx.comment == "/manual",
    )


@pytest.fixture
def settings():
    return Settings(repository="quarkusio/quarkus", run_id=77)


@pytest.fixture
def store():
    return Mock()


@pytest.fixture
def release():
    return ReleaseInformation(version="3.2.0.CR1", branch="3.2", qualifier="CR1")


def make_orchestrator(settings, store, registry, gh=None):
    return ReleaseOrchestrator(gh or Mock(), settings, store, registry=registry)


def status_at(step, step_status=StepStatus.INIT):
    return ReleaseStatus(
        status=Status.STARTED,
        current_step=step.value,
        current_step_status=step_status,
        updated_at="2026-01-01T00:00:00Z",
        workflow_run_id=1,
    )


ISSUE = {"number": 42, "body": ""}
OPENED = ReleaseEvent(name="issues")


class TestSkip:
    """Skipped steps cascade within a single pass."""

    def test_skip_cascade(self, settings, store, release):
        last = stub_step(THIRD, run=Mock(return_value=StepResult(comments=["third done"])))
        registry = StepRegistry([
            stub_step(FIRST, should_skip=always),
            stub_step(SECOND, should_skip=always),
            last,
        ])

        result = make_orchestrator(settings, store, registry).handle(OPENED, ISSUE, release, status_at(FIRST))

        last.run.assert_called_once()
        assert result.status.status == Status.COMPLETED
        assert result.comments[0] == "third done"
        assert "is complete" in result.comments[1]
        assert not result.failed

    def test_skip_produces_no_output(self, settings, store, release):
        registry = StepRegistry([
            stub_step(FIRST, should_skip=always),
            pausing_step(SECOND),
        ])

        result = make_orchestrator(settings, store, registry).handle(OPENED, ISSUE, release, status_at(FIRST))

        assert result.comments == ["Reply /auto or /manual"]
        assert result.status.current_step == SECOND.value


class TestPause:
    """Paused steps wait for a relevant operator comment."""

    @pytest.fixture
    def registry(self):
        return StepRegistry([pausing_step(FIRST), stub_step(SECOND)])

    def test_pause_emits_interaction_comment(self, settings, store, release, registry):
        result = make_orchestrator(settings, store, registry).handle(OPENED, ISSUE, release, status_at(FIRST))

        assert result.status.current_step == FIRST.value
        assert result.status.current_step_status == StepStatus.PAUSED
        assert result.status.awaiting_resume
        assert result.comments == ["Reply /auto or /manual"]
        assert result.outputs["interaction-comment"] == "Reply /auto or /manual"
        registry.get(FIRST.value).run.assert_not_called()

    def test_unrelated_comment_is_ignored(self, settings, store, release, registry):
        paused = status_at(FIRST, StepStatus.PAUSED)
        event = ReleaseEvent(name="issue_comment", comment_body="I'll check tomorrow")

        result = make_orchestrator(settings, store, registry).handle(event, ISSUE, release, paused)

        assert result.status is paused
        assert result.status.workflow_run_id == 1
        assert result.comments == []
        assert "interaction-comment" not in result.outputs
        registry.get(FIRST.value).run.assert_not_called()
        store.save.assert_called_once_with(release, paused)

    def test_auto_resumes_and_runs(self, settings, store, release, registry):
        paused = status_at(FIRST, StepStatus.PAUSED)
        event = ReleaseEvent(name="issue_comment", comment_body="/auto")

        result = make_orchestrator(settings, store, registry).handle(event, ISSUE, release, paused)

        registry.get(FIRST.value).run.assert_called_once()
        assert result.status.current_step == SECOND.value
        assert result.status.current_step_status == StepStatus.INIT
        assert not result.status.awaiting_resume
        # the step halts after running
        registry.get(SECOND.value).run.assert_not_called()

    def test_manual_skips_and_continues(self, settings, store, release, registry):
        paused = status_at(FIRST, StepStatus.PAUSED)
        event = ReleaseEvent(name="issue_comment", comment_body="/manual")

        result = make_orchestrator(settings, store, registry).handle(event, ISSUE, release, paused)

        registry.get(FIRST.value).run.assert_not_called()
        registry.get(SECOND.value).run.assert_called_once()
        assert result.status.status == Status.COMPLETED


class TestRun:
    """Tests for running steps."""

    def test_corrected_release_is_adopted(self, settings, store):
        original = ReleaseInformation(version=None, branch="3.2", qualifier="Final")
        corrected = original.with_version("3.2.1").with_maintenance(True)
        registry = StepRegistry([
            stub_step(FIRST, run=Mock(return_value=StepResult(release=corrected))),
            stub_step(SECOND),
        ])

        result = make_orchestrator(settings, store, registry).handle(OPENED, ISSUE, original, status_at(FIRST))

        assert result.release.version == "3.2.1"
        assert result.release.maintenance is True
        assert result.outputs["version"] == "3.2.1"
        assert result.outputs["maintenance"] == "true"
        store.save.assert_called_with(corrected, result.status)

    def test_started_step_is_saved_before_running(self, settings, store, release):
        def run(ctx):
            saved = store.save.call_args[0][1]
            assert saved.current_step == FIRST.value
            assert saved.current_step_status == StepStatus.STARTED
            assert saved.workflow_run_id == 77
            return StepResult()

        registry = StepRegistry([stub_step(FIRST, run=run), stub_step(SECOND)])

        result = make_orchestrator(settings, store, registry).handle(OPENED, ISSUE, release, status_at(FIRST))

        assert store.save.call_count == 2
        store.save.assert_called_with(release, result.status)
        assert result.status.current_step == SECOND.value

    def test_killed_pass_leaves_step_started(self, settings, store, release):
        registry = StepRegistry([stub_step(FIRST, run=Mock(side_effect=KeyboardInterrupt)), stub_step(SECOND)])

        with pytest.raises(KeyboardInterrupt):
            make_orchestrator(settings, store, registry).handle(OPENED, ISSUE, release, status_at(FIRST))

        saved = store.save.call_args[0][1]
        assert saved.status == Status.STARTED
        assert saved.current_step == FIRST.value
        assert saved.current_step_status == StepStatus.STARTED

    def test_interrupted_step_runs_again(self, settings, store, release):
        """A step left STARTED is run again without consulting its pause predicate."""
        step = pausing_step(FIRST)
        registry = StepRegistry([step, stub_step(SECOND)])

        result = make_orchestrator(settings, store, registry).handle(
            OPENED, ISSUE, release, status_at(FIRST, StepStatus.STARTED)
        )

        step.run.assert_called_once()
        assert result.status.current_step == SECOND.value

    def test_halt_after_run_can_be_disabled(self, settings, store, release):
        second = stub_step(SECOND)
        registry = StepRegistry([
            StepDefinition(
                name=FIRST,
                description="Chained",
                run=Mock(return_value=StepResult()),
                halt_after_run=False,
            ),
            second,
        ])

        make_orchestrator(settings, store, registry).handle(OPENED, ISSUE, release, status_at(FIRST))

        second.run.assert_called_once()

    def test_workflow_run_id_is_recorded_on_change(self, settings, store, release):
        registry = StepRegistry([stub_step(FIRST), stub_step(SECOND)])

        result = make_orchestrator(settings, store, registry).handle(OPENED, ISSUE, release, status_at(FIRST))

        assert result.status.workflow_run_id == 77


class TestFailure:
    """A failing step halts the release with the error kept verbatim."""

    @pytest.mark.parametrize("error,kind", [
        (InvalidStateError("Milestone 3.2 - main not found"), ErrorKind.INVALID_STATE),
        (GitHubClientError("gh command failed: HTTP 502"), ErrorKind.REMOTE),
        (OSError("Connection reset"), ErrorKind.REMOTE),
        (InterruptedError("Interrupted"), ErrorKind.INTERRUPTED),
        (ReleaseBotError("Other"), ErrorKind.INVALID_STATE),
        (RuntimeError("Boom"), ErrorKind.UNEXPECTED),
    ])
    def test_exceptions_fail_the_release(self, settings, store, release, error, kind):
        second = stub_step(SECOND)
        registry = StepRegistry([stub_step(FIRST, run=Mock(side_effect=error)), second])

        result = make_orchestrator(settings, store, registry).handle(OPENED, ISSUE, release, status_at(FIRST))

        assert result.failed
        assert result.error.kind == kind
        assert result.error.message == str(error)
        assert result.status.status == Status.FAILED
        assert result.status.current_step == FIRST.value
        assert result.status.current_step_status == StepStatus.FAILED
        assert result.status.error == str(error)
        assert result.outputs["error"] == str(error)
        assert str(error) in result.comments[-1]
        second.run.assert_not_called()
        # once with the started step, once with the failure
        assert store.save.call_count == 2
        assert store.save.call_args[0][1] is result.status

    def test_returned_error_fails_the_release(self, settings, store, release):
        registry = StepRegistry([
            stub_step(FIRST, run=Mock(return_value=StepResult.failure(ErrorKind.REMOTE, "Rate limited"))),
        ])

        result = make_orchestrator(settings, store, registry).handle(OPENED, ISSUE, release, status_at(FIRST))

        assert result.status.status == Status.FAILED
        assert result.status.error == "Rate limited"

    @pytest.mark.parametrize("predicate", ["should_skip", "should_pause"])
    def test_predicate_errors_fail_the_release(self, settings, store, release, predicate):
        def broken(ctx):
            raise RuntimeError("Boom")

        first = stub_step(FIRST, **{predicate: broken})
        registry = StepRegistry([first, stub_step(SECOND)])

        result = make_orchestrator(settings, store, registry).handle(OPENED, ISSUE, release, status_at(FIRST))

        first.run.assert_not_called()
        assert result.error.kind == ErrorKind.UNEXPECTED
        assert result.status.status == Status.FAILED
        assert result.status.current_step == FIRST.value
        assert result.status.error == "Boom"
        assert result.status.workflow_run_id == 77
        assert "Boom" in result.comments[-1]
        assert f"Stub {FIRST.value}" in result.comments[-1]
        store.save.assert_called_once_with(release, result.status)

    def test_resume_predicate_errors_fail_the_release(self, settings, store, release):
        def broken(ctx):
            raise GitHubClientError("HTTP 502")

        registry = StepRegistry([stub_step(FIRST, should_skip_after_pause=broken)])
        event = ReleaseEvent(name="issue_comment", comment_body="/auto")

        result = make_orchestrator(settings, store, registry).handle(
            event, ISSUE, release, status_at(FIRST, StepStatus.PAUSED)
        )

        assert result.error.kind == ErrorKind.REMOTE
        assert result.status.status == Status.FAILED
        assert result.outputs["error"] == "HTTP 502"
        store.save.assert_called_once_with(release, result.status)

    def test_unknown_step_fails_the_release(self, settings, store, release):
        registry = StepRegistry([stub_step(FIRST)])
        status = ReleaseStatus(Status.STARTED, "publish-docs", StepStatus.INIT, workflow_run_id=1)

        result = make_orchestrator(settings, store, registry).handle(OPENED, ISSUE, release, status)

        assert result.error.kind == ErrorKind.INVALID_STATE
        assert result.status.status == Status.FAILED
        assert "publish-docs" in result.comments[-1]
        store.save.assert_called_once_with(release, result.status)


class TestTerminal:
    """Completed and failed releases ignore further events."""

    @pytest.mark.parametrize("terminal", [Status.COMPLETED, Status.FAILED])
    def test_terminal_release_is_inert(self, settings, store, release, terminal):
        step = pausing_step(FIRST)
        registry = StepRegistry([step])
        status = ReleaseStatus(
            status=terminal,
            current_step=FIRST.value,
            current_step_status=StepStatus.COMPLETED,
            workflow_run_id=1,
        )
        event = ReleaseEvent(name="issue_comment", comment_body="/auto")

        result = make_orchestrator(settings, store, registry).handle(event, ISSUE, release, status)

        step.run.assert_not_called()
        assert result.status is status
        assert result.comments == []
        store.save.assert_called_once_with(release, status)


class TestReleaseRegistry:
    """Passes through the real release steps."""

    def test_later_candidate_release_skips_branch_and_fails_prepare(self, settings, store):
        """CR2 skips the branch creation and the prepare step reports its error."""
        cr2 = ReleaseInformation(version="3.2.0.CR2", branch="3.2", qualifier="CR2")

        result = make_orchestrator(settings, store, REGISTRY).handle(
            ReleaseEvent(name="issue_comment", comment_body="ok"), ISSUE, cr2, status_at(SECOND)
        )

        assert result.status.status == Status.FAILED
        assert result.status.current_step == THIRD.value
        assert result.status.error == "Testing error handling..."
        assert len(result.comments) == 1
        assert "Testing error handling..." in result.comments[0]
        assert "Prepare the core release" in result.comments[0]
        assert result.comments[0].startswith("<!-- release-bot:3.2-CR2 -->")

    def test_first_candidate_release_pauses_at_branch_creation(self, settings, store, release):
        gh = Mock()
        gh.list_tags.return_value = ["3.1.0.Final"]

        result = make_orchestrator(settings, store, REGISTRY, gh=gh).handle(
            OPENED, ISSUE, release, status_at(SECOND)
        )

        assert result.status.current_step == SECOND.value
        assert result.status.awaiting_resume
        assert "`/auto`" in result.outputs["interaction-comment"]
        assert result.outputs["current-step"] == "create-branch"
        assert result.outputs["current-step-status"] == "paused"
        gh.create_ref.assert_not_called()

    def test_missing_gh_binary_while_pausing_fails_the_release(self, settings, store, release):
        gh = Mock()
        gh.list_tags.side_effect = FileNotFoundError("gh")

        result = make_orchestrator(settings, store, REGISTRY, gh=gh).handle(
            ReleaseEvent(name="issue_comment", comment_body="ok"), ISSUE, release, status_at(SECOND)
        )

        assert result.failed
        assert result.error.kind == ErrorKind.REMOTE
        assert result.status.status == Status.FAILED
        assert result.status.current_step == SECOND.value
        assert result.status.error == "gh"
        assert "Create the branch" in result.comments[-1]
        assert "gh" in result.comments[-1]
        assert result.comments[-1].startswith("<!-- release-bot:3.2-CR1 -->")
        store.save.assert_called_once_with(release, result.status)
        gh.create_ref.assert_not_called()
