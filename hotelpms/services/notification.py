"""
Admin notification dispatch - best-effort alert that a join request arrived
"""
import logging
from abc import ABC, abstractmethod
from typing import Dict, Optional

import httpx

logger = logging.getLogger(__name__)


class AdminNotifier(ABC):
    """Notification channel for hotel admins"""

    @abstractmethod
    def notify_join_request(self, join_request_id: str) -> bool:
        """Alert the hotel admins; returns whether the alert was delivered. Never raises."""

    @abstractmethod
    def get_channel_type(self) -> str:
        """Channel identifier such as 'webhook'"""


class NullAdminNotifier(AdminNotifier):
    """Used when no notification endpoint is configured"""

    def notify_join_request(self, join_request_id: str) -> bool:
        logger.debug(f"Admin notification disabled, skipping join request {join_request_id}")
        return False

    def get_channel_type(self) -> str:
        return "null"


class WebhookAdminNotifier(AdminNotifier):
    """
    Posts ``{"joinRequestId": ...}`` to the notify-admin hook

    Args:
        webhook_url: endpoint of the hook
        headers: extra request headers (e.g. an API key)
        timeout: request timeout in seconds
        transport: optional httpx transport (tests pass httpx.MockTransport)
    """

    def __init__(
        self,
        webhook_url: str,
        headers: Optional[Dict[str, str]] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.webhook_url = webhook_url
        self.headers = headers or {"Content-Type": "application/json"}
        self.timeout = timeout
        self._transport = transport

    def notify_join_request(self, join_request_id: str) -> bool:
        if not self.webhook_url:
            logger.error("Notify-admin URL not configured")
            return False

        payload = {"joinRequestId": str(join_request_id)}
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                resp = client.post(self.webhook_url, json=payload, headers=self.headers)
                resp.raise_for_status()
            logger.info(f"Admin notified of join request {join_request_id}")
            return True
        except Exception as e:
            logger.warning(f"Failed to notify admin of join request {join_request_id}: {e}")
            return False

    def get_channel_type(self) -> str:
        return "webhook"


def build_notifier(url: str, timeout: float = 10.0) -> AdminNotifier:
    if not url:
        return NullAdminNotifier()
    return WebhookAdminNotifier(url, timeout=timeout)
