"""Proxmox VE API client."""

from typing import Optional

import httpx

from ..config import ClusterTarget
from .base import UpstreamClient

CALL_TIMEOUT = 10.0


class ProxmoxService(UpstreamClient):
    """Starts QEMU VMs through the Proxmox VE REST API using an API token."""

    def __init__(self, cluster: ClusterTarget, transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__(
            verify_tls=cluster.verify_tls,
            transport=transport,
            label=f"proxmox[{cluster.name}]",
        )
        self.cluster = cluster

    @property
    def auth_header(self) -> str:
        return f"PVEAPIToken={self.cluster.api_token_id}={self.cluster.api_token_secret}"

    async def start_vm(self, node: str, vm_id: int, timeout: float = CALL_TIMEOUT) -> None:
        """
        Ask the cluster to start a VM.

        Args:
            node: Proxmox node name
            vm_id: QEMU VM id
            timeout: Total time allowed for the call in seconds (capped at 10)

        Raises:
            UpstreamError: If the request fails or the API does not answer 200
        """
        url = f"{self.cluster.api_base_url}/nodes/{node}/qemu/{vm_id}/status/start"
        await self._send(
            "POST",
            url,
            expected_status=200,
            timeout=min(timeout, CALL_TIMEOUT),
            headers={
                "Authorization": self.auth_header,
                "Accept": "application/json",
            },
        )
