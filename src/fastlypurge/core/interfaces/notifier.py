"""Notifier interface."""

from typing import Protocol


class INotifier(Protocol):
    """Contract for announcing purge and configuration events."""

    async def send(self, message: str, event: str) -> bool:
        """Send a notification.

        Args:
            message: Human readable text.
            event: Event name, e.g. "purge_all" or "vcl_update".

        Returns:
            True if a notification was delivered, False if it was
            filtered out or failed.
        """
        ...
