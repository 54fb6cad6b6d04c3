"""Core release prepare step.

Exercises the failure path of the release process: it always fails with
an invalid-state error so the halt and the error report can be checked
end to end.
"""

from .steps import ErrorKind, StepContext, StepDefinition, StepName, StepResult

TESTING_ERROR_MESSAGE = "Testing error handling..."


def run(ctx: StepContext) -> StepResult:
    return StepResult.failure(ErrorKind.INVALID_STATE, TESTING_ERROR_MESSAGE)


CORE_RELEASE_PREPARE = StepDefinition(
    name=StepName.CORE_RELEASE_PREPARE,
    description="Prepare the core release",
    run=run,
)
