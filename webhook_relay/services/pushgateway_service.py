"""Prometheus Pushgateway client."""

from typing import Optional

import httpx

from ..config import ClusterTarget
from .base import UpstreamClient

CALL_TIMEOUT = 10.0
OOM_JOB = "oom_killer"


class PushgatewayService(UpstreamClient):
    """Deletes pushed oom_killer metric groups from a cluster's Pushgateway."""

    def __init__(self, cluster: ClusterTarget, transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__(
            verify_tls=cluster.metrics_verify_tls,
            transport=transport,
            label=f"pushgateway[{cluster.name}]",
        )
        self.cluster = cluster

    async def delete_oom_gauge(self, node: str, vm_id: int, timeout: float = CALL_TIMEOUT) -> None:
        """
        Delete the oom_killer group for one VM.

        The Pushgateway answers 202 Accepted for a successful delete; any
        other status is treated as a failure.

        Raises:
            UpstreamError: If the request fails or the gateway does not answer 202
        """
        url = (
            f"{self.cluster.metrics_push_url}/metrics/job/{OOM_JOB}"
            f"/cluster/{self.cluster.name}/node/{node}/vm_id/{vm_id}"
        )
        await self._send("DELETE", url, expected_status=202, timeout=min(timeout, CALL_TIMEOUT))
