"""Request models for the relay and its outbound calls."""

from pydantic import BaseModel, ConfigDict, Field


class StartVMRequest(BaseModel):
    """Webhook payload asking for a VM to be started."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "cluster": "dc1",
                "node": "pve-node-03",
                "vm_id": 214
            }
        }
    )

    # Absent fields are rejected rather than zero-filled.
    cluster: str = Field(..., description="Cluster name as listed in PROXMOX_LIST")
    node: str = Field(..., description="Proxmox node hosting the VM")
    vm_id: int = Field(..., strict=True, description="Numeric VM id")


class SendMessageRequest(BaseModel):
    """Body of a Telegram Bot API sendMessage call."""

    chat_id: str
    text: str
