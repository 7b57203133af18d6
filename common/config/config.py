"""
Configuration module for the Xcode Cloud monitor.

Module-level constants are read from the environment (after loading an optional
.env file). Host-tunable options are grouped in XcodeCloudSettings, which is
re-read through from_env() whenever the host wants fresh values.
"""

import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)


def _env_int(key: str, default: int) -> int:
    raw = os.getenv(key)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid integer for {key}: {raw!r} (using {default})")
        return default


def _env_bool(key: str, default: bool) -> bool:
    raw = os.getenv(key)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


# App Store Connect endpoints
XCODE_CLOUD_API_BASE_URL = os.getenv(
    "XCODE_CLOUD_API_BASE_URL", "https://api.appstoreconnect.apple.com/v1"
).rstrip("/")
XCODE_CLOUD_WEB_BASE_URL = os.getenv(
    "XCODE_CLOUD_WEB_BASE_URL", "https://appstoreconnect.apple.com"
).rstrip("/")

# Transport
XCODE_CLOUD_HTTP_TIMEOUT_SECONDS = float(_env_int("XCODE_CLOUD_HTTP_TIMEOUT_SECONDS", 30))

# Credential storage
XCODE_CLOUD_SECRETS_FILE = os.path.expanduser(
    os.getenv("XCODE_CLOUD_SECRETS_FILE", "~/.xcode_cloud/secrets.env")
)

# Logging
XCODE_CLOUD_LOG_LEVEL = os.getenv("XCODE_CLOUD_LOG_LEVEL", "INFO").upper()


@dataclass
class XcodeCloudSettings:
    """Host-facing options recognised by the monitor."""

    polling_interval_seconds: int = 30
    show_status_bar_item: bool = True
    notify_on_build_complete: bool = True

    @classmethod
    def from_env(cls) -> "XcodeCloudSettings":
        """Create settings from environment variables."""
        return cls(
            polling_interval_seconds=_env_int("XCODE_CLOUD_POLLING_INTERVAL_SECONDS", 30),
            show_status_bar_item=_env_bool("XCODE_CLOUD_SHOW_STATUS_BAR_ITEM", True),
            notify_on_build_complete=_env_bool("XCODE_CLOUD_NOTIFY_ON_BUILD_COMPLETE", True),
        )
