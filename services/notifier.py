"""Alert delivery to a messaging webhook."""

from __future__ import annotations

import logging
from typing import Dict, Optional

import httpx

from app.schemas import AlertRecord, ComfortKind
from errors import NotifyError
from settings import DEFAULT_COLD_TEMPLATE, DEFAULT_HOT_TEMPLATE

logger = logging.getLogger(__name__)


class WebhookNotifier:
    """Posts ``{"text": ...}`` payloads to an incoming-webhook URL."""

    def __init__(
        self,
        http_client: httpx.Client,
        webhook_url: Optional[str],
        templates: Optional[Dict[ComfortKind, str]] = None,
    ) -> None:
        self.http_client = http_client
        self.webhook_url = webhook_url
        self.templates = templates or {
            ComfortKind.hot: DEFAULT_HOT_TEMPLATE,
            ComfortKind.cold: DEFAULT_COLD_TEMPLATE,
        }

    def format_message(self, alert: AlertRecord) -> str:
        template = self.templates[alert.kind]
        try:
            return template.format(
                device_id=alert.device_id,
                temperature=alert.observed_temperature,
                minutes=alert.evaluation_window_minutes,
                comfort_min=alert.comfort_min,
                comfort_max=alert.comfort_max,
            )
        except (AttributeError, IndexError, KeyError, TypeError, ValueError) as exc:
            raise NotifyError(f"Invalid {alert.kind.value} message template: {exc}") from exc

    def send(self, message: str) -> None:
        if not self.webhook_url:
            raise NotifyError("No webhook URL configured.")
        try:
            response = self.http_client.post(self.webhook_url, json={"text": message})
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error("Webhook delivery failed: %s", exc)
            raise NotifyError(f"Webhook delivery failed: {exc}") from exc
        logger.info("Webhook notification delivered")
