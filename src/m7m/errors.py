"""Exception hierarchy for flow definitions, runs and collaborators.

Two families matter to the interpreter:

- ``FlowError`` subclasses are raised while running steps. ``FatalFlowError``
  means the definition itself is broken and is never handled by a step
  fallback. ``StepFailedError`` and ``FlowAbortedError`` are ordinary
  operational failures.
- ``OperationError`` subclasses are raised by the I/O collaborators and the
  notifier transports. The interpreter routes them into failure recovery.
"""

from __future__ import annotations


class FlowDefinitionError(ValueError):
    """Raised when a flow document cannot be turned into a valid definition."""


class FlowError(Exception):
    """Base class for every failure raised while running a step list."""


class FatalFlowError(FlowError):
    """A configuration or usage error. Never retried, never recovered."""


class MissingInputError(FatalFlowError):
    pass


class UnknownNotifierError(FatalFlowError):
    pass


class UnsupportedComparisonError(FatalFlowError):
    pass


class InvalidPatternError(FatalFlowError):
    pass


class StepFailedError(FlowError):
    """An operational step failure that no fallback handled."""


class CaptureNotFoundError(StepFailedError):
    pass


class FlowAbortedError(FlowError):
    """Raised by an explicit ``abort_flow`` step."""


class OperationError(Exception):
    """Failure of an I/O collaborator after its retries were exhausted."""


class HttpError(OperationError):
    pass


class FileOperationError(OperationError):
    pass


class NotificationError(OperationError):
    pass
