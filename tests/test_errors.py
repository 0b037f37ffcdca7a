import pytest

from docrefine.errors import (
    Busy,
    DocRefineError,
    ExecutionFailure,
    InvalidState,
    InvalidStepState,
    NoActivePlan,
)


def test_no_active_plan_is_an_invalid_state():
    error = NoActivePlan("No active plan")

    assert isinstance(error, InvalidState)
    assert error.code == "NO_ACTIVE_PLAN"
    assert error.http_status == 409


@pytest.mark.parametrize(
    "error",
    [NoActivePlan("No active plan"), InvalidStepState("s1", "COMPLETED", "delete")],
)
def test_invalid_state_errors_caught_by_base(error):
    with pytest.raises(InvalidState):
        raise error


def test_invalid_step_state_reason():
    reason = InvalidStepState("s1", "COMPLETED", "delete").to_reason()
    assert reason == {
        "code": "INVALID_STATE",
        "message": "Cannot delete step s1: status is COMPLETED",
        "step_id": "s1",
        "status": "COMPLETED",
    }


def test_busy_reason_names_running_operation():
    reason = Busy("run step", running="run all").to_reason()
    assert reason["code"] == "BUSY"
    assert reason["running"] == "run all"


def test_execution_failure_reason():
    error = ExecutionFailure("Step 'B' failed", step_id="s2", step_name="B", completed_step_ids=["s1"])
    assert isinstance(error, DocRefineError)
    assert error.to_reason()["completed_step_ids"] == ["s1"]
