"""Abstract notifier interface and the per-flow notifier set."""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from collections.abc import Iterator, Mapping

from m7m.errors import UnknownNotifierError


class Notifier(ABC):
    """A channel that is set up to deliver a message.

    Implementations raise ``NotificationError`` when delivery fails.
    """

    @abstractmethod
    def send(self, message: str) -> None:
        """Deliver one message.

        Args:
            message: Rendered message text.
        """
        pass


class MessageLog:
    """Thread-safe record of messages captured by in-memory notifiers."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._messages: list[str] = []

    def append(self, message: str) -> None:
        with self._lock:
            self._messages.append(message)

    def messages(self) -> list[str]:
        with self._lock:
            return list(self._messages)

    def __len__(self) -> int:
        with self._lock:
            return len(self._messages)


class NotifierSet(Mapping[str, Notifier]):
    """Read-only mapping of notifier name to notifier."""

    def __init__(self, notifiers: Mapping[str, Notifier] | None = None) -> None:
        self._notifiers: dict[str, Notifier] = dict(notifiers or {})

    def __getitem__(self, name: str) -> Notifier:
        return self._notifiers[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._notifiers)

    def __len__(self) -> int:
        return len(self._notifiers)

    def require(self, name: str) -> Notifier:
        """Return the notifier called ``name``.

        Raises:
            UnknownNotifierError: If the flow declares no such notifier.
        """
        try:
            return self._notifiers[name]
        except KeyError:
            raise UnknownNotifierError(f"no notifier found with specified name {name}") from None
