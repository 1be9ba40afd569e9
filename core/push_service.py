# Push Notification Service (Firebase Cloud Messaging HTTP API)
import logging
from typing import Dict, Iterable, Optional

import requests

from config import app_config

logger = logging.getLogger(__name__)

FCM_SEND_URL = "https://fcm.googleapis.com/fcm/send"


class PushService:
    """Send push messages to device tokens. Delivery failures are logged, never raised."""

    def __init__(self, server_key: Optional[str] = None):
        self.server_key = server_key if server_key is not None else app_config.FCM_SERVER_KEY

    @property
    def enabled(self) -> bool:
        return bool(self.server_key)

    def send_to_token(self, token: str, title: str, body: str, data: Optional[Dict[str, str]] = None) -> bool:
        """
        Send one push message.

        Returns:
            bool: True if FCM accepted the message
        """
        if not self.enabled or not token:
            return False

        payload = {
            "to": token,
            "notification": {"title": title, "body": body},
            "data": {k: str(v) for k, v in (data or {}).items()},
        }
        try:
            response = requests.post(
                FCM_SEND_URL,
                headers={
                    "Authorization": f"key={self.server_key}",
                    "Content-Type": "application/json",
                },
                json=payload,
                timeout=10,
            )
            response.raise_for_status()
            return response.json().get("success", 0) > 0
        except requests.exceptions.RequestException:
            logger.exception(f"FCM push failed for token {token[:12]}...")
            return False

    def send_to_tokens(self, tokens: Iterable[str], title: str, body: str, data: Optional[Dict[str, str]] = None) -> int:
        """Send to many tokens; returns the number delivered."""
        success_count = 0
        for token in tokens:
            if self.send_to_token(token, title, body, data):
                success_count += 1
        logger.info(f"Push '{title}' delivered to {success_count} device(s)")
        return success_count
