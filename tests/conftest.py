"""Test configuration and fixtures."""

from __future__ import annotations

from collections.abc import Callable
from unittest.mock import Mock

import pytest
import requests

from m7m.config import RunnerSettings
from m7m.flows.interpreter import FlowServices
from m7m.io import HttpClient
from m7m.notifiers import MemoryNotifier, MessageLog, NotifierSet


def _make_response(status_code: int = 200, text: str = "", json_body: object = None) -> Mock:
    resp = Mock(spec=requests.Response)
    resp.status_code = status_code
    resp.text = text
    if json_body is None:
        resp.json.side_effect = ValueError("no json")
    else:
        resp.json.return_value = json_body
    return resp


@pytest.fixture
def settings(monkeypatch: pytest.MonkeyPatch) -> RunnerSettings:
    """Provide settings isolated from the environment and any `.env` file."""
    for name in ("M7M_TELEGRAM_TOKEN", "M7M_TELEGRAM_CHAT_ID", "M7M_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    return RunnerSettings(_env_file=None)


@pytest.fixture
def sleeps() -> list[float]:
    """Collects the delays passed to the injected sleep function."""
    return []


@pytest.fixture
def mock_session() -> Mock:
    """Provide a mocked ``requests.Session``."""
    return Mock(spec=requests.Session)


@pytest.fixture
def services(mock_session: Mock, sleeps: list[float]) -> FlowServices:
    """Provide flow services that never touch the network or really sleep."""
    return FlowServices(
        http=HttpClient(session=mock_session, sleep=sleeps.append),
        sleep=sleeps.append,
    )


@pytest.fixture
def message_log() -> MessageLog:
    return MessageLog()


@pytest.fixture
def notifiers(message_log: MessageLog) -> NotifierSet:
    """Provide a notifier set with one in-memory notifier called ``n1``."""
    return NotifierSet({"n1": MemoryNotifier(message_log)})


@pytest.fixture
def make_response() -> Callable[..., Mock]:
    """Factory for stand-ins of ``requests.Response``."""
    return _make_response
