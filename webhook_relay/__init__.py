"""
vm-webhook-relay: start Proxmox VMs on alert webhooks and report the outcome.

A small FastAPI service that receives a start-VM webhook (typically fired by
an OOM-killer alert), asks the Proxmox cluster to start the VM, clears the
matching oom_killer gauge from the cluster's Pushgateway and posts a message
to a Telegram chat saying whether the VM came back.

Basic Usage:
    from webhook_relay import create_app, load_settings

    app = create_app(load_settings())

Or from the command line:
    webhook-relay --port 8080
"""

__version__ = "0.1.0"

from .app import create_app
from .config import ClusterTarget, NotificationTarget, Settings, load_settings

__all__ = [
    'create_app',
    'load_settings',
    'Settings',
    'ClusterTarget',
    'NotificationTarget',
    '__version__',
]
