"""Webhook notifier implementation."""

import logging

import httpx

from fastlypurge.core.entities.purge_config import PurgeConfig

logger = logging.getLogger(__name__)

WEBHOOK_USERNAME = "fastlypurge-bot"
WEBHOOK_ICON = ":airplane:"


class WebhookNotifier:
    """Posts event messages to a chat-style incoming webhook.

    Only events listed in ``webhook_notifications`` are sent, and only
    while ``webhook_enabled`` is set. Delivery failures are logged and
    never raised.
    """

    def __init__(
        self,
        config: PurgeConfig,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config
        self._client = http_client or httpx.AsyncClient()
        self._owns_client = http_client is None

    def is_subscribed(self, event: str) -> bool:
        """Check if an event should be delivered."""
        return (
            self._config.webhook_enabled
            and bool(self._config.webhook_url)
            and event in self._config.webhook_notifications
        )

    async def send(self, message: str, event: str) -> bool:
        """Send a message for an event.

        Args:
            message: Text of the message.
            event: Event name, e.g. "purge_all".

        Returns:
            True if the webhook accepted the message.
        """
        if not self.is_subscribed(event):
            return False

        body = {
            "text": message,
            "username": WEBHOOK_USERNAME,
            "icon_emoji": WEBHOOK_ICON,
        }
        try:
            response = await self._client.post(
                self._config.webhook_url,
                json=body,
                timeout=httpx.Timeout(
                    self._config.webhook_connect_timeout * 5,
                    connect=self._config.webhook_connect_timeout,
                ),
            )
        except httpx.HTTPError as e:
            logger.error("Webhook notification for %s failed: %s", event, e)
            return False

        if not response.is_success:
            logger.error(
                "Webhook notification for %s returned HTTP %s",
                event,
                response.status_code,
            )
            return False
        return True

    async def aclose(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()
