"""Notifiers that need no external service, plus the chain composite."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from m7m.errors import NotificationError
from m7m.notifiers.base import MessageLog, Notifier

logger = logging.getLogger(__name__)


class PrintNotifier(Notifier):
    """Writes each message to stdout."""

    def send(self, message: str) -> None:
        try:
            print(message, flush=True)
        except (OSError, UnicodeError) as e:
            raise NotificationError(f"could not write notification to stdout: {e}") from e


class MemoryNotifier(Notifier):
    """Captures messages in a shared ``MessageLog`` (used in tests)."""

    def __init__(self, log: MessageLog | None = None) -> None:
        self.log = log if log is not None else MessageLog()

    def send(self, message: str) -> None:
        self.log.append(message)

    def saved_messages(self) -> list[str]:
        return self.log.messages()


class NotifierChain(Notifier):
    """Sends every message to each member in order.

    Fail-fast: the first member that raises aborts the remaining sends and
    the error propagates to the caller.
    """

    def __init__(self, notifiers: Sequence[Notifier] = ()) -> None:
        self._notifiers: list[Notifier] = list(notifiers)

    def chain_with(self, notifier: Notifier) -> NotifierChain:
        self._notifiers.append(notifier)
        return self

    def __len__(self) -> int:
        return len(self._notifiers)

    def send(self, message: str) -> None:
        for idx, notifier in enumerate(self._notifiers):
            logger.debug(
                "Chain delivering to member",
                extra={"member": idx, "notifier": type(notifier).__name__},
            )
            notifier.send(message)
