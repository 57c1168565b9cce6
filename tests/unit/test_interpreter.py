"""Unit tests for the step interpreter (mocked HTTP, in-memory notifiers)."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from unittest.mock import Mock

import pytest
import requests

from m7m.errors import (
    FlowAbortedError,
    InvalidPatternError,
    MissingInputError,
    NotificationError,
    StepFailedError,
    UnknownNotifierError,
    UnsupportedComparisonError,
)
from m7m.flows.interpreter import FlowServices, StepInterpreter, render_message
from m7m.flows.models import (
    AbortFlow,
    AppendFile,
    CompareVar,
    DebugState,
    ExtractCapture,
    FailSpec,
    GetUrl,
    Notify,
    PostUrl,
    ReadFile,
    SetVariable,
    Sleep,
)
from m7m.flows.state import ExecutionState
from m7m.notifiers import MemoryNotifier, MessageLog, Notifier, NotifierSet


class _FailingNotifier(Notifier):
    def __init__(self) -> None:
        self.calls = 0

    def send(self, message: str) -> None:
        self.calls += 1
        raise NotificationError("delivery failed")


@pytest.fixture
def interpreter(notifiers: NotifierSet, services: FlowServices) -> StepInterpreter:
    return StepInterpreter(notifiers, "test-flow", services)


def test_set_variable_sets_var_and_last_output(interpreter: StepInterpreter) -> None:
    state = ExecutionState()

    interpreter.run([SetVariable(output_var="n", value="v")], state)

    assert state.vars["n"] == "v"
    assert state.last_output == "v"


def test_unnamed_input_reads_previous_output(
    interpreter: StepInterpreter, message_log: MessageLog
) -> None:
    state = ExecutionState()

    interpreter.run(
        [
            SetVariable(output_var="a", value="first"),
            SetVariable(value="second"),
            DebugState(),
            CompareVar(
                compare_with="second",
                if_true=(Notify(notifier="n1", message="got {_}"),),
            ),
        ],
        state,
    )

    assert message_log.messages() == ["got second"]


def test_compare_var_on_unset_variable_is_fatal(interpreter: StepInterpreter) -> None:
    state = ExecutionState()

    with pytest.raises(MissingInputError):
        interpreter.run([CompareVar(input_var="nope", compare_with="x")], state)


def test_get_url_is_attempted_retries_plus_one_times(
    interpreter: StepInterpreter, mock_session: Mock, sleeps: list[float]
) -> None:
    mock_session.get.side_effect = requests.ConnectionError("down")
    state = ExecutionState()

    with pytest.raises(StepFailedError):
        interpreter.run(
            [GetUrl(url="https://e.x/a", fail=FailSpec(retries=3, retry_interval=2.0))], state
        )

    assert mock_session.get.call_count == 4
    assert sleeps == [2.0, 2.0, 2.0]


def test_non_2xx_get_counts_as_failure(
    interpreter: StepInterpreter,
    mock_session: Mock,
    make_response: Callable[..., Mock],
) -> None:
    mock_session.get.return_value = make_response(503, "unavailable")

    with pytest.raises(StepFailedError, match="503"):
        interpreter.run([GetUrl(url="https://e.x/a")], ExecutionState())


def test_successful_fallback_continues_with_next_sibling(
    interpreter: StepInterpreter, mock_session: Mock, message_log: MessageLog
) -> None:
    mock_session.get.side_effect = requests.Timeout("slow")
    state = ExecutionState()

    interpreter.run(
        [
            GetUrl(
                url="https://e.x/a",
                output_var="page",
                fail=FailSpec(fallback=(SetVariable(output_var="page", value="cached"),)),
            ),
            Notify(notifier="n1", message="page={page}"),
        ],
        state,
    )

    assert state.vars["page"] == "cached"
    assert message_log.messages() == ["page=cached"]


def test_recovered_step_leaves_its_own_output_unset(
    interpreter: StepInterpreter, mock_session: Mock
) -> None:
    mock_session.get.side_effect = requests.ConnectionError("down")
    state = ExecutionState()

    interpreter.run(
        [GetUrl(url="https://e.x/a", output_var="page", fail=FailSpec(fallback=(DebugState(),)))],
        state,
    )

    assert "page" not in state.vars
    assert state.last_output is None


def test_failing_fallback_propagates_its_own_error(
    interpreter: StepInterpreter, mock_session: Mock
) -> None:
    mock_session.get.side_effect = requests.ConnectionError("down")

    with pytest.raises(MissingInputError):
        interpreter.run(
            [
                GetUrl(
                    url="https://e.x/a",
                    fail=FailSpec(fallback=(CompareVar(input_var="x", compare_with="y"),)),
                )
            ],
            ExecutionState(),
        )


def test_compare_var_runs_matching_arm(
    interpreter: StepInterpreter, message_log: MessageLog
) -> None:
    steps = [
        CompareVar(
            input_var="v",
            compare_with="yes",
            if_true=(Notify(notifier="n1", message="true arm"),),
            if_false=(Notify(notifier="n1", message="false arm"),),
        )
    ]

    state = ExecutionState()
    state.set_output("yes", "v")
    interpreter.run(steps, state)

    state = ExecutionState()
    state.set_output("no", "v")
    interpreter.run(steps, state)

    assert message_log.messages() == ["true arm", "false arm"]


def test_compare_var_with_empty_arm_is_noop(interpreter: StepInterpreter) -> None:
    state = ExecutionState()
    state.set_output("a", "v")

    interpreter.run([CompareVar(input_var="v", compare_with="b")], state)

    assert state.vars == {"v": "a"}


def test_unsupported_comparison_is_fatal(interpreter: StepInterpreter) -> None:
    state = ExecutionState()
    state.set_output("1", "v")

    with pytest.raises(UnsupportedComparisonError):
        interpreter.run([CompareVar(input_var="v", compare_with="1", compare_for="greater")], state)


def test_abort_inside_branch_stops_enclosing_lists(
    interpreter: StepInterpreter, message_log: MessageLog
) -> None:
    state = ExecutionState()
    state.set_output("x", "v")

    with pytest.raises(FlowAbortedError):
        interpreter.run(
            [
                CompareVar(input_var="v", compare_with="x", if_true=(AbortFlow(),)),
                Notify(notifier="n1", message="never sent"),
            ],
            state,
        )

    assert message_log.messages() == []


def test_abort_inside_step_fallback_fails_that_fallback(
    interpreter: StepInterpreter, mock_session: Mock, message_log: MessageLog
) -> None:
    mock_session.get.side_effect = requests.ConnectionError("down")

    with pytest.raises(FlowAbortedError):
        interpreter.run(
            [
                GetUrl(url="https://e.x/a", fail=FailSpec(fallback=(AbortFlow(),))),
                Notify(notifier="n1", message="never sent"),
            ],
            ExecutionState(),
        )

    assert message_log.messages() == []


def test_unknown_notifier_is_fatal_and_skips_fallback(
    interpreter: StepInterpreter, message_log: MessageLog
) -> None:
    step = Notify(
        notifier="ghost",
        message="hi",
        fail=FailSpec(fallback=(Notify(notifier="n1", message="fallback ran"),)),
    )

    with pytest.raises(UnknownNotifierError):
        interpreter.run([step], ExecutionState())

    assert message_log.messages() == []


def test_notification_failure_goes_through_fallback(
    services: FlowServices, message_log: MessageLog
) -> None:
    failing = _FailingNotifier()
    interpreter = StepInterpreter(
        NotifierSet({"broken": failing, "n1": MemoryNotifier(message_log)}), "test-flow", services
    )

    interpreter.run(
        [
            Notify(
                notifier="broken",
                message="hi",
                fail=FailSpec(retries=5, fallback=(Notify(notifier="n1", message="backup"),)),
            )
        ],
        ExecutionState(),
    )

    # Delivery is not retried by the step.
    assert failing.calls == 1
    assert message_log.messages() == ["backup"]


def test_extract_capture_no_match_is_recoverable(
    interpreter: StepInterpreter, message_log: MessageLog
) -> None:
    state = ExecutionState()
    state.set_output("nothing here", "text")

    interpreter.run(
        [
            ExtractCapture(
                input_var="text",
                output_var="id",
                pattern=r"id:(\d+)",
                fail=FailSpec(fallback=(Notify(notifier="n1", message="no id"),)),
            )
        ],
        state,
    )

    assert "id" not in state.vars
    assert message_log.messages() == ["no id"]


def test_extract_capture_without_group_fails(interpreter: StepInterpreter) -> None:
    state = ExecutionState()
    state.set_output("id:1")

    with pytest.raises(StepFailedError):
        interpreter.run([ExtractCapture(pattern=r"id:\d+")], state)


def test_extract_capture_invalid_pattern_is_fatal(interpreter: StepInterpreter) -> None:
    state = ExecutionState()
    state.set_output("text")

    with pytest.raises(InvalidPatternError):
        interpreter.run(
            [ExtractCapture(pattern="(unclosed", fail=FailSpec(fallback=(DebugState(),)))], state
        )


def test_fetch_extract_notify_scenario(
    interpreter: StepInterpreter,
    mock_session: Mock,
    message_log: MessageLog,
    make_response: Callable[..., Mock],
) -> None:
    mock_session.get.side_effect = [
        requests.ConnectionError("down"),
        requests.ConnectionError("still down"),
        make_response(200, "id:42"),
    ]
    state = ExecutionState()

    interpreter.run(
        [
            GetUrl(url="https://e.x/a", output_var="r", fail=FailSpec(retries=2)),
            ExtractCapture(input_var="r", pattern=r"id:(\d+)", output_var="id"),
            Notify(notifier="n1", message="id is {id}"),
        ],
        state,
    )

    assert mock_session.get.call_count == 3
    assert state.vars["id"] == "42"
    assert message_log.messages() == ["id is 42"]


def test_post_url_sends_body_and_headers(
    interpreter: StepInterpreter,
    mock_session: Mock,
    make_response: Callable[..., Mock],
) -> None:
    mock_session.post.return_value = make_response(201)

    interpreter.run(
        [PostUrl(url="https://e.x/hook", body="payload", headers={"X-Token": "t"})],
        ExecutionState(),
    )

    kwargs = mock_session.post.call_args.kwargs
    assert kwargs["data"] == b"payload"
    assert kwargs["headers"]["X-Token"] == "t"


def test_read_and_append_files(interpreter: StepInterpreter, tmp_path: Path) -> None:
    source = tmp_path / "in.txt"
    source.write_text("hello", encoding="utf-8")
    target = tmp_path / "out.txt"
    state = ExecutionState()

    interpreter.run(
        [
            ReadFile(path=str(source), output_var="content"),
            AppendFile(path=str(target), input_var="content"),
            AppendFile(path=str(target)),
        ],
        state,
    )

    assert state.vars["content"] == "hello"
    assert target.read_text(encoding="utf-8") == "hello\nhello\n"


def test_append_file_uses_fallback_on_failure(
    interpreter: StepInterpreter, tmp_path: Path, message_log: MessageLog
) -> None:
    state = ExecutionState()
    state.set_output("line")

    interpreter.run(
        [
            AppendFile(
                path=str(tmp_path / "missing-dir" / "out.txt"),
                fail=FailSpec(fallback=(Notify(notifier="n1", message="append failed"),)),
            )
        ],
        state,
    )

    assert message_log.messages() == ["append failed"]


def test_sleep_uses_injected_sleep(interpreter: StepInterpreter, sleeps: list[float]) -> None:
    interpreter.run([Sleep(duration=1.5)], ExecutionState())

    assert sleeps == [1.5]


def test_render_message_leaves_unknown_placeholders() -> None:
    state = ExecutionState()
    state.set_output("42", "id")

    rendered = render_message("id={id} last={_} other={other}", state)

    assert rendered == "id=42 last=42 other={other}"
