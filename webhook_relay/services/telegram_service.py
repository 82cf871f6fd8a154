"""Telegram Bot API notifier."""

import logging
from typing import Optional

import httpx

from ..config import NotificationTarget
from ..exceptions import NotificationError
from ..models import SendMessageRequest
from .base import UpstreamClient, status_line

logger = logging.getLogger(__name__)

CALL_TIMEOUT = 5.0

RESOLVED_TEMPLATE = (
    "✅ OOM resolved\n"
    "Node: {node}\n"
    "VM: {vm_id}\n"
)

FAILED_TEMPLATE = (
    "❌ OOM not resolved\n"
    "Node: {node}\n"
    "VM: {vm_id}\n"
    "{error}"
)


class TelegramService(UpstreamClient):
    """
    Sends remediation reports to a Telegram chat.

    Notifications are a best-effort side channel: ``notify_*`` methods log
    delivery failures and never raise.
    """

    error_class = NotificationError
    transport_prefix = "post to telegram"

    def __init__(self, target: NotificationTarget, transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__(verify_tls=target.verify_tls, transport=transport, label="telegram")
        self.target = target

    async def send_message(self, text: str) -> None:
        """
        Post a message to the configured chat.

        Raises:
            NotificationError: If Telegram does not answer 200
        """
        url = f"{self.target.api_base_url}/bot{self.target.bot_token}/sendMessage"
        body = SendMessageRequest(chat_id=self.target.chat_id, text=text)
        await self._send("POST", url, expected_status=200, timeout=CALL_TIMEOUT, json=body.model_dump())

    def _status_message(self, response: httpx.Response) -> str:
        return f"telegram API returned {status_line(response)}"

    def _redact(self, text: str) -> str:
        if not self.target.bot_token:
            return text
        return text.replace(self.target.bot_token, "***")

    async def notify_oom_resolved(self, node: str, vm_id: int) -> bool:
        """Report a successful restart. Returns whether the message was delivered."""
        text = RESOLVED_TEMPLATE.format(node=node, vm_id=vm_id)
        return await self._deliver(text, "notify_oom_resolved")

    async def notify_oom_failed(self, node: str, vm_id: int, error: object) -> bool:
        """Report a failed restart with the error text. Returns whether it was delivered."""
        text = FAILED_TEMPLATE.format(node=node, vm_id=vm_id, error=error)
        return await self._deliver(text, "notify_oom_failed")

    async def _deliver(self, text: str, what: str) -> bool:
        try:
            await self.send_message(text)
        except NotificationError as e:
            logger.error(f"{what} failed to send status: {e}")
            return False
        return True
