"""Step interpreter: runs a step list against one run's execution state.

Steps run in order on the calling thread. A step whose I/O collaborator fails
(after its own retries) goes through failure recovery: its fallback list runs
against the same state and, if that succeeds, the enclosing list carries on
with the next step. Fatal errors skip recovery entirely.
"""

from __future__ import annotations

import logging
import re
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass

import requests

from m7m.config import RunnerSettings
from m7m.errors import (
    CaptureNotFoundError,
    FlowAbortedError,
    InvalidPatternError,
    OperationError,
    StepFailedError,
    UnsupportedComparisonError,
)
from m7m.flows.models import (
    AbortFlow,
    AppendFile,
    CompareVar,
    DebugState,
    ExtractCapture,
    GetUrl,
    Notify,
    PostUrl,
    ReadFile,
    SetVariable,
    Sleep,
    Step,
)
from m7m.flows.state import ExecutionState
from m7m.io import HttpClient, append_line, read_text_file
from m7m.notifiers.base import NotifierSet

logger = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")

# Name of the placeholder that stands for the last output.
LAST_OUTPUT_PLACEHOLDER = "_"


@dataclass(slots=True)
class FlowServices:
    """I/O collaborators a flow run talks to."""

    http: HttpClient
    sleep: Callable[[float], None] = time.sleep
    read_file: Callable[..., str] = read_text_file
    append_file: Callable[..., None] = append_line

    @classmethod
    def from_settings(
        cls, settings: RunnerSettings, *, session: requests.Session | None = None
    ) -> FlowServices:
        return cls(
            http=HttpClient(
                timeout=settings.http_timeout_seconds,
                user_agent=settings.user_agent,
                session=session,
            )
        )


def render_message(template: str, state: ExecutionState) -> str:
    """Fill ``{name}`` placeholders from the state.

    ``{_}`` is the last output. Placeholders that name nothing known are kept
    verbatim.
    """

    def substitute(match: re.Match[str]) -> str:
        name = match.group(1)
        if name == LAST_OUTPUT_PLACEHOLDER and state.last_output is not None:
            return state.last_output
        if name in state.vars:
            return state.vars[name]
        return match.group(0)

    return _PLACEHOLDER.sub(substitute, template)


class StepInterpreter:
    """Executes step lists for one flow run."""

    def __init__(self, notifiers: NotifierSet, flow_label: str, services: FlowServices) -> None:
        self._notifiers = notifiers
        self._label = flow_label
        self._services = services

    def run(self, steps: Sequence[Step], state: ExecutionState) -> None:
        """Run ``steps`` in order.

        Raises:
            FlowError: The first failure no fallback handled.
        """
        for step in steps:
            logger.debug("Running step", extra={"flow": self._label, "step": step.kind})
            self._execute(step, state)

    def recover(self, error: Exception, fallback: Sequence[Step], state: ExecutionState) -> None:
        """Handle a failed step by running its fallback list.

        Raises:
            StepFailedError: If there is no fallback.
            FlowError: Whatever the fallback itself failed with.
        """
        logger.warning("Step failed: %s", error, extra={"flow": self._label})
        if not fallback:
            raise StepFailedError(str(error)) from error

        logger.info(
            "Entering step fallback", extra={"flow": self._label, "steps": len(fallback)}
        )
        self.run(fallback, state)
        logger.info("Step fallback completed", extra={"flow": self._label})

    def _execute(self, step: Step, state: ExecutionState) -> None:
        services = self._services

        if isinstance(step, AbortFlow):
            logger.info("Aborting flow", extra={"flow": self._label})
            raise FlowAbortedError("flow aborted")

        elif isinstance(step, DebugState):
            logger.info(
                "Execution state", extra={"flow": self._label, "state": state.snapshot()}
            )

        elif isinstance(step, Sleep):
            services.sleep(step.duration)

        elif isinstance(step, SetVariable):
            state.set_output(step.value, step.output_var)

        elif isinstance(step, Notify):
            notifier = self._notifiers.require(step.notifier)
            message = render_message(step.message, state)
            try:
                notifier.send(message)
            except OperationError as e:
                self.recover(e, step.fail.fallback, state)

        elif isinstance(step, GetUrl):
            try:
                text = services.http.get_text(
                    step.url, retries=step.fail.retries, retry_interval=step.fail.retry_interval
                )
            except OperationError as e:
                self.recover(e, step.fail.fallback, state)
            else:
                state.set_output(text, step.output_var)

        elif isinstance(step, PostUrl):
            try:
                services.http.post_text(
                    step.url,
                    body=step.body,
                    headers=step.headers,
                    retries=step.fail.retries,
                    retry_interval=step.fail.retry_interval,
                )
            except OperationError as e:
                self.recover(e, step.fail.fallback, state)

        elif isinstance(step, ReadFile):
            try:
                text = services.read_file(
                    step.path, step.fail.retries, step.fail.retry_interval, sleep=services.sleep
                )
            except OperationError as e:
                self.recover(e, step.fail.fallback, state)
            else:
                state.set_output(text, step.output_var)

        elif isinstance(step, AppendFile):
            text = state.get_input(step.input_var)
            try:
                services.append_file(
                    step.path,
                    text,
                    step.fail.retries,
                    step.fail.retry_interval,
                    sleep=services.sleep,
                )
            except OperationError as e:
                self.recover(e, step.fail.fallback, state)

        elif isinstance(step, ExtractCapture):
            text = state.get_input(step.input_var)
            try:
                captured = _first_capture(step.pattern, text)
            except CaptureNotFoundError as e:
                self.recover(e, step.fail.fallback, state)
            else:
                state.set_output(captured, step.output_var)

        elif isinstance(step, CompareVar):
            value = state.get_input(step.input_var)
            if step.compare_for != "equality":
                raise UnsupportedComparisonError(
                    f"unsupported comparison {step.compare_for!r}, only 'equality' is available"
                )
            arm = step.if_true if value == step.compare_with else step.if_false
            if arm:
                self.run(arm, state)

        else:  # pragma: no cover
            raise TypeError(f"Unsupported step: {type(step).__name__}")


def _first_capture(pattern: str, text: str) -> str:
    try:
        compiled = re.compile(pattern)
    except re.error as e:
        raise InvalidPatternError(f"invalid regex {pattern!r}: {e}") from e

    match = compiled.search(text)
    if match is None:
        raise CaptureNotFoundError(f"pattern {pattern!r} did not match")
    if compiled.groups < 1 or match.group(1) is None:
        raise CaptureNotFoundError(f"pattern {pattern!r} matched but captured nothing")
    return match.group(1)
