"""
Environment configuration for the webhook relay.

Settings are read once at startup into frozen dataclasses. Values may also
come from a local ``.env`` file; anything already set in the process
environment takes precedence over the file.

Recognized variables:
    PORT, HOST, LOG_LEVEL
    PROXMOX_LIST                    comma-separated cluster names
    PROXMOX_<NAME>_URL              e.g. https://pve1:8006/api2/json
    PROXMOX_<NAME>_TOKEN_ID         e.g. root@pam!relay
    PROXMOX_<NAME>_TOKEN_SECRET
    PROXMOX_<NAME>_VERIFY_TLS       default false
    PUSHGATEWAY_<NAME>_URL          optional
    PUSHGATEWAY_<NAME>_VERIFY_TLS   default false
    TELEGRAM_API_URL                default https://api.telegram.org
    TELEGRAM_BOT_TOKEN, TELEGRAM_CHAT_ID
    TELEGRAM_VERIFY_TLS             default true
"""

import os
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Optional, Union

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_TELEGRAM_API_URL = "https://api.telegram.org"
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8080
DEFAULT_ENV_FILE = ".env"

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class ClusterTarget:
    """Connection details for one Proxmox cluster and its Pushgateway."""

    name: str
    api_base_url: str = ""
    api_token_id: str = ""
    api_token_secret: str = field(default="", repr=False)
    metrics_push_url: str = ""
    verify_tls: bool = False
    metrics_verify_tls: bool = False


@dataclass(frozen=True)
class NotificationTarget:
    """Telegram bot used to report remediation outcomes."""

    api_base_url: str = DEFAULT_TELEGRAM_API_URL
    bot_token: str = field(default="", repr=False)
    chat_id: str = ""
    verify_tls: bool = True


@dataclass(frozen=True)
class Settings:
    """Immutable configuration snapshot for the lifetime of the process."""

    clusters: Mapping[str, ClusterTarget] = field(default_factory=dict)
    notification: NotificationTarget = field(default_factory=NotificationTarget)
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    log_level: str = "INFO"

    def get_cluster(self, name: str) -> Optional[ClusterTarget]:
        """Look up a configured cluster by the name it was listed under."""
        return self.clusters.get(name)


def _parse_bool(value: Optional[str], default: bool) -> bool:
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in _TRUE_VALUES


def _base_url(value: Optional[str], default: str = "") -> str:
    return (value or default).rstrip("/")


def _load_cluster(name: str, env: Mapping[str, str]) -> ClusterTarget:
    upper = name.upper()
    return ClusterTarget(
        name=name,
        api_base_url=_base_url(env.get(f"PROXMOX_{upper}_URL")),
        api_token_id=env.get(f"PROXMOX_{upper}_TOKEN_ID", ""),
        api_token_secret=env.get(f"PROXMOX_{upper}_TOKEN_SECRET", ""),
        metrics_push_url=_base_url(env.get(f"PUSHGATEWAY_{upper}_URL")),
        verify_tls=_parse_bool(env.get(f"PROXMOX_{upper}_VERIFY_TLS"), False),
        metrics_verify_tls=_parse_bool(env.get(f"PUSHGATEWAY_{upper}_VERIFY_TLS"), False),
    )


def settings_from_env(env: Mapping[str, str]) -> Settings:
    """
    Build settings from an environment mapping.

    Args:
        env: Variable name to value mapping (usually ``os.environ``)

    Returns:
        Settings snapshot

    Raises:
        ValueError: If PORT is not an integer
    """
    names = [n.strip() for n in env.get("PROXMOX_LIST", "").split(",")]
    clusters: Dict[str, ClusterTarget] = {}
    for name in names:
        if not name:
            continue
        clusters[name] = _load_cluster(name, env)

    notification = NotificationTarget(
        api_base_url=_base_url(env.get("TELEGRAM_API_URL"), DEFAULT_TELEGRAM_API_URL),
        bot_token=env.get("TELEGRAM_BOT_TOKEN", ""),
        chat_id=env.get("TELEGRAM_CHAT_ID", ""),
        verify_tls=_parse_bool(env.get("TELEGRAM_VERIFY_TLS"), True),
    )

    port_value = env.get("PORT", "").strip()
    try:
        port = int(port_value) if port_value else DEFAULT_PORT
    except ValueError:
        raise ValueError(f"PORT must be an integer, got {port_value!r}") from None

    return Settings(
        clusters=clusters,
        notification=notification,
        host=env.get("HOST", "").strip() or DEFAULT_HOST,
        port=port,
        log_level=(env.get("LOG_LEVEL", "").strip() or "INFO").upper(),
    )


def load_settings(env_file: Optional[Union[str, Path]] = None) -> Settings:
    """
    Load settings from the process environment, falling back to a .env file.

    Args:
        env_file: Path of the dotenv file (defaults to WEBHOOK_RELAY_ENV_FILE
            or ``.env`` in the working directory). A missing file is ignored.

    Returns:
        Settings snapshot
    """
    path = env_file or os.environ.get("WEBHOOK_RELAY_ENV_FILE", DEFAULT_ENV_FILE)
    if Path(path).is_file():
        load_dotenv(path, override=False)
        logger.debug(f"Loaded environment fallback from {path}")

    return settings_from_env(os.environ)
