"""Build a flow's notifier set from its notifier configs."""

from __future__ import annotations

import logging
from collections.abc import Sequence

import requests

from m7m.config import RunnerSettings
from m7m.errors import FlowDefinitionError
from m7m.flows.models import (
    ChainNotifierConfig,
    MemoryNotifierConfig,
    NotifierConfig,
    PrintNotifierConfig,
    TelegramNotifierConfig,
)
from m7m.notifiers.base import MessageLog, Notifier, NotifierSet
from m7m.notifiers.channels import MemoryNotifier, NotifierChain, PrintNotifier
from m7m.notifiers.telegram import TelegramNotifier

logger = logging.getLogger(__name__)


def telegram_credentials(
    config: TelegramNotifierConfig, settings: RunnerSettings
) -> tuple[str, str]:
    """Resolve token and chat id, falling back to the process settings.

    Raises:
        FlowDefinitionError: If either value is missing from both places.
    """
    token = config.token or settings.telegram_token
    chat_id = config.chat_id or settings.telegram_chat_id
    if not token:
        raise FlowDefinitionError(
            f"telegram notifier {config.name} has no token (set it or M7M_TELEGRAM_TOKEN)"
        )
    if not chat_id:
        raise FlowDefinitionError(
            f"telegram notifier {config.name} has no chat_id (set it or M7M_TELEGRAM_CHAT_ID)"
        )
    return token, chat_id


def _create(
    config: NotifierConfig,
    *,
    settings: RunnerSettings,
    message_log: MessageLog,
    session: requests.Session | None,
) -> Notifier:
    if isinstance(config, PrintNotifierConfig):
        return PrintNotifier()
    elif isinstance(config, MemoryNotifierConfig):
        return MemoryNotifier(message_log)
    elif isinstance(config, TelegramNotifierConfig):
        token, chat_id = telegram_credentials(config, settings)
        return TelegramNotifier(
            token=token,
            chat_id=chat_id,
            base_url=settings.telegram_base_url,
            timeout=settings.http_timeout_seconds,
            session=session,
        )
    else:
        raise ValueError(f"Unsupported notifier type: {config.type}")


def build_notifiers(
    configs: Sequence[NotifierConfig],
    *,
    settings: RunnerSettings,
    message_log: MessageLog,
    session: requests.Session | None = None,
) -> NotifierSet:
    """Create every notifier of a flow.

    Chains are built after the plain notifiers so they can reference them by
    name.

    Args:
        configs: The flow's notifier configs.
        settings: Process settings (Telegram fallbacks, timeouts).
        message_log: Log shared by the flow's in-memory notifiers.
        session: Optional HTTP session for notifiers that talk to a service.

    Raises:
        FlowDefinitionError: If a chain target or a credential is missing.
    """
    built: dict[str, Notifier] = {}

    for config in configs:
        if isinstance(config, ChainNotifierConfig):
            continue
        built[config.name] = _create(
            config, settings=settings, message_log=message_log, session=session
        )

    for config in configs:
        if not isinstance(config, ChainNotifierConfig):
            continue
        chain = NotifierChain()
        for target in config.targets:
            member = built.get(target)
            if member is None or isinstance(member, NotifierChain):
                raise FlowDefinitionError(
                    f"chain notifier {config.name} references unknown notifier {target}"
                )
            chain.chain_with(member)
        built[config.name] = chain

    logger.debug("Built notifiers", extra={"notifiers": sorted(built)})
    return NotifierSet(built)
