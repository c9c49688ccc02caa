"""Job monitoring exports."""

from media_hub.core.engine.monitor import (
    DEFAULT_POLL_INTERVAL,
    CancellationToken,
    RemoteJobMonitor,
)

__all__ = ["DEFAULT_POLL_INTERVAL", "CancellationToken", "RemoteJobMonitor"]
