"""Service layer for upstream calls and remediation."""

from .proxmox_service import ProxmoxService
from .pushgateway_service import PushgatewayService
from .telegram_service import TelegramService
from .remediation import Deadline, RemediationOutcome, RemediationService

__all__ = [
    "ProxmoxService",
    "PushgatewayService",
    "TelegramService",
    "Deadline",
    "RemediationOutcome",
    "RemediationService",
]
