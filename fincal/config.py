"""Runtime settings read from the environment."""
import os

API_URL = os.getenv("FINCAL_API_URL") or None
API_TOKEN = os.getenv("FINCAL_API_TOKEN") or None
SYNC_TIMEOUT = float(os.getenv("FINCAL_SYNC_TIMEOUT", "10"))
LOG_LEVEL = os.getenv("FINCAL_LOG_LEVEL", "WARNING")


def cloud_sync_allowed() -> bool:
    """Cloud sync runs only when an API is configured and offline mode is off."""
    return bool(API_URL) and not os.getenv("FINCAL_OFFLINE")
