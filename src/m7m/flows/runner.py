"""One flow, run on demand or scheduled by its trigger."""

from __future__ import annotations

import logging
from enum import Enum

import requests

from m7m.config import RunnerSettings
from m7m.errors import FlowError
from m7m.flows.interpreter import FlowServices, StepInterpreter
from m7m.flows.models import (
    FlowDefinition,
    IntervalTriggerSpec,
    OnceTriggerSpec,
    TelegramNotifierConfig,
)
from m7m.flows.state import ExecutionState
from m7m.flows.triggers import TriggerHandle, start_interval, start_once
from m7m.notifiers.base import MessageLog
from m7m.notifiers.factory import build_notifiers, telegram_credentials

logger = logging.getLogger(__name__)


class RunOutcome(str, Enum):
    COMPLETED = "completed"
    RECOVERED = "recovered"
    FAILED = "failed"


class FlowRunner:
    """Runs a ``FlowDefinition`` with fresh state each time.

    The runner owns the ``MessageLog`` of the flow's in-memory notifiers, so
    messages captured by one run stay visible after later runs.
    """

    def __init__(
        self,
        flow: FlowDefinition,
        settings: RunnerSettings | None = None,
        services: FlowServices | None = None,
        *,
        session: requests.Session | None = None,
    ) -> None:
        self.flow = flow
        self._settings = settings or RunnerSettings()
        self._services = services or FlowServices.from_settings(self._settings)
        self._session = session or requests.Session()
        self.message_log = MessageLog()

        # Fail at startup rather than on the first run.
        for config in flow.notifiers:
            if isinstance(config, TelegramNotifierConfig):
                telegram_credentials(config, self._settings)

    @property
    def label(self) -> str:
        return self.flow.label

    def run_once(self) -> RunOutcome:
        """Run the root steps and, if they fail, the flow's ``upon_failure`` steps.

        Step failures never escape; they are logged and reflected in the outcome.
        """
        extra = {"flow": self.label}
        logger.info("Flow run started", extra=extra)

        try:
            notifiers = build_notifiers(
                self.flow.notifiers,
                settings=self._settings,
                message_log=self.message_log,
                session=self._session,
            )
        except Exception:
            logger.exception("Could not set up notifiers", extra=extra)
            return RunOutcome.FAILED

        interpreter = StepInterpreter(notifiers, self.label, self._services)
        state = ExecutionState()

        try:
            interpreter.run(self.flow.steps, state)
        except FlowError as e:
            logger.warning("Flow failed: %s", e, extra=extra)
            if not self.flow.upon_failure:
                logger.error("Flow run failed with no fallback", extra=extra)
                return RunOutcome.FAILED
            return self._run_fallback(interpreter, state)
        except Exception:
            logger.exception("Flow run raised an unexpected error", extra=extra)
            return RunOutcome.FAILED

        logger.info("Flow run completed", extra=extra)
        return RunOutcome.COMPLETED

    def _run_fallback(self, interpreter: StepInterpreter, state: ExecutionState) -> RunOutcome:
        extra = {"flow": self.label}
        logger.info("Entering flow fallback", extra=extra)
        try:
            interpreter.run(self.flow.upon_failure, state)
        except FlowError as e:
            logger.error("Flow fallback failed: %s", e, extra=extra)
            return RunOutcome.FAILED
        except Exception:
            logger.exception("Flow fallback raised an unexpected error", extra=extra)
            return RunOutcome.FAILED

        logger.info("Flow fallback completed", extra=extra)
        return RunOutcome.RECOVERED

    def schedule(self) -> TriggerHandle | None:
        """Start the flow's trigger thread; ``None`` if the flow has no trigger."""

        trigger = self.flow.trigger
        if isinstance(trigger, OnceTriggerSpec):
            return start_once(self.run_once, name=self.label)
        elif isinstance(trigger, IntervalTriggerSpec):
            return start_interval(self.run_once, interval=trigger.interval, name=self.label)

        logger.warning("Flow has no trigger and will never run", extra={"flow": self.label})
        return None
