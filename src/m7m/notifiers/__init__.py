"""Notification channels a flow can send messages to."""

from m7m.notifiers.base import MessageLog, Notifier, NotifierSet
from m7m.notifiers.channels import MemoryNotifier, NotifierChain, PrintNotifier
from m7m.notifiers.factory import build_notifiers
from m7m.notifiers.telegram import TelegramNotifier

__all__ = [
    "MemoryNotifier",
    "MessageLog",
    "Notifier",
    "NotifierChain",
    "NotifierSet",
    "PrintNotifier",
    "TelegramNotifier",
    "build_notifiers",
]
