"""
Webhook alerting for fatal poller errors.
"""
import logging
from typing import Dict, Optional

import requests

from .config import Config


logger = logging.getLogger(__name__)

# Discord embed colour (red)
ALERT_COLOR = 15548997


class WebhookAlerter:
    """
    Posts error notifications to a Discord-compatible webhook.

    Delivery is best effort: the response status is logged but not checked,
    and transport errors are logged instead of raised.
    """

    def __init__(self, webhook_url: Optional[str], timeout: float = 10):
        self.webhook_url = webhook_url or ""
        self.timeout = timeout
        self.session = requests.Session()

    @classmethod
    def from_config(cls, config: Config) -> "WebhookAlerter":
        return cls(
            webhook_url=config.get("alerting.webhook_url"),
            timeout=config.get("alerting.timeout", 10),
        )

    @property
    def enabled(self) -> bool:
        return bool(self.webhook_url)

    @staticmethod
    def build_payload(error: BaseException, title: str) -> Dict:
        return {
            "embeds": [
                {
                    "title": title,
                    "description": str(error),
                    "color": ALERT_COLOR,
                }
            ]
        }

    def notify(
        self, error: BaseException, title: str = "Error while trying to save a record"
    ) -> Optional[int]:
        """
        Send an alert for ``error``.

        Returns:
            HTTP status code of the webhook response, or None if nothing was delivered
        """
        if not self.enabled:
            logger.warning(f"Alerting disabled, not reporting: {error}")
            return None

        try:
            response = self.session.post(
                self.webhook_url,
                json=self.build_payload(error, title),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Failed to deliver alert: {e}")
            return None

        logger.info(f"Alert webhook responded with status {response.status_code}")
        return response.status_code

    def __repr__(self) -> str:
        return f"WebhookAlerter(enabled={self.enabled})"
