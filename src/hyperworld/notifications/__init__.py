"""Notifications module."""

from hyperworld.notifications.telegram import TelegramNotifier

__all__ = ["TelegramNotifier"]
