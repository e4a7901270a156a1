"""Public interface for the aioturntable client package."""

from .client import DisconnectCallback, ListenerCountCallback, RadioClient, StateCallback

__all__ = [
    "DisconnectCallback",
    "ListenerCountCallback",
    "RadioClient",
    "StateCallback",
]
