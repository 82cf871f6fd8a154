"""Remediation service: start an OOM-killed VM and report the outcome."""

import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Optional

import httpx

from ..config import ClusterTarget, Settings
from ..exceptions import UnknownClusterError, UpstreamError
from ..models import StartVMRequest
from .proxmox_service import CALL_TIMEOUT as PROXMOX_TIMEOUT, ProxmoxService
from .pushgateway_service import CALL_TIMEOUT as PUSHGATEWAY_TIMEOUT, PushgatewayService
from .telegram_service import TelegramService

logger = logging.getLogger(__name__)

REQUEST_DEADLINE = 15.0

CancelCheck = Callable[[], Awaitable[bool]]


class Deadline:
    """Time budget shared by the bounded calls of one webhook."""

    def __init__(self, seconds: float, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self.expires_at = clock() + seconds

    def remaining(self) -> float:
        return self.expires_at - self._clock()

    def timeout_for(self, step: str, cap: float) -> float:
        """
        Timeout to give the next call.

        Raises:
            UpstreamError: With cause "deadline" if no time is left
        """
        remaining = self.remaining()
        if remaining <= 0:
            raise UpstreamError(f"deadline exceeded before {step}", cause="deadline")
        return min(cap, remaining)


@dataclass
class RemediationOutcome:
    """What happened to one start-VM webhook."""

    success: bool
    failed_step: Optional[str] = None
    error: Optional[str] = None

    @property
    def vm_started(self) -> bool:
        return self.failed_step != "start_vm"


class RemediationService:
    """Coordinates the Proxmox, Pushgateway and Telegram calls for a webhook."""

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Initialize remediation service.

        Args:
            settings: Configuration snapshot (never modified)
            transport: httpx transport shared by all upstream clients
        """
        self.settings = settings
        self.proxmox: Dict[str, ProxmoxService] = {}
        self.pushgateways: Dict[str, PushgatewayService] = {}

        for name, cluster in settings.clusters.items():
            self.proxmox[name] = ProxmoxService(cluster, transport=transport)
            self.pushgateways[name] = PushgatewayService(cluster, transport=transport)

        self.notifier = TelegramService(settings.notification, transport=transport)

    async def aclose(self):
        """Close every upstream client."""
        for client in [*self.proxmox.values(), *self.pushgateways.values(), self.notifier]:
            await client.aclose()

    def resolve_cluster(self, name: str) -> ClusterTarget:
        """
        Raises:
            UnknownClusterError: If the cluster is not configured
        """
        cluster = self.settings.get_cluster(name)
        if cluster is None:
            raise UnknownClusterError(name)
        return cluster

    async def _bounded_timeout(
        self,
        step: str,
        cap: float,
        deadline: Deadline,
        cancelled: Optional[CancelCheck],
    ) -> float:
        if cancelled is not None and await cancelled():
            raise UpstreamError(f"request cancelled before {step}", cause="cancelled")
        return deadline.timeout_for(step, cap)

    async def start_vm(
        self,
        request: StartVMRequest,
        deadline: Optional[Deadline] = None,
        cancelled: Optional[CancelCheck] = None,
    ) -> RemediationOutcome:
        """
        Start the VM, report success and clear its OOM gauge.

        Steps run strictly in order and stop at the first failing one. The
        resolved notification is sent before the gauge is deleted and is not
        retracted if the delete fails. A failed start is returned to the
        caller, which sends the failure notification with
        :meth:`notify_failed` once it has answered the webhook.

        Args:
            request: Decoded webhook payload
            deadline: Budget for the start and delete calls (15s by default)
            cancelled: Awaitable check, consulted before the start and the
                delete, that tells whether the webhook caller has gone away

        Returns:
            RemediationOutcome

        Raises:
            UnknownClusterError: If the cluster is not configured
        """
        cluster = self.resolve_cluster(request.cluster)
        deadline = deadline or Deadline(REQUEST_DEADLINE)
        context = f"cluster={request.cluster} node={request.node} vmid={request.vm_id}"

        proxmox = self.proxmox[cluster.name]
        try:
            timeout = await self._bounded_timeout("start_vm", PROXMOX_TIMEOUT, deadline, cancelled)
            await proxmox.start_vm(request.node, request.vm_id, timeout=timeout)
        except UpstreamError as e:
            logger.error(f"startVM failed ({e.cause}) for {context}: {e}")
            return RemediationOutcome(success=False, failed_step="start_vm", error=str(e))

        logger.info(f"VM started: {context}")
        await self.notifier.notify_oom_resolved(request.node, request.vm_id)

        pushgateway = self.pushgateways[cluster.name]
        try:
            timeout = await self._bounded_timeout(
                "delete_oom_gauge", PUSHGATEWAY_TIMEOUT, deadline, cancelled
            )
            await pushgateway.delete_oom_gauge(request.node, request.vm_id, timeout=timeout)
        except UpstreamError as e:
            logger.error(
                f"deleteOOMGauge failed ({e.cause}) for pushgateway={cluster.metrics_push_url} "
                f"{context}: {e}"
            )
            return RemediationOutcome(success=False, failed_step="delete_oom_gauge", error=str(e))

        logger.info(
            f"metric oom_killer_event deleted: pushgateway={cluster.metrics_push_url} {context}"
        )
        return RemediationOutcome(success=True)

    async def notify_failed(self, node: str, vm_id: int, error: str) -> None:
        """Best-effort failure report; delivery problems are only logged."""
        await self.notifier.notify_oom_failed(node, vm_id, error)
