"""Notifier implementations."""

from fastlypurge.infrastructure.notifiers.webhook import WebhookNotifier

__all__ = ["WebhookNotifier"]
