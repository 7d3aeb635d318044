"""Notification adapters - NotificationDispatcher implementations."""

from .console import ConsoleNotificationDispatcher

__all__ = ["ConsoleNotificationDispatcher"]
