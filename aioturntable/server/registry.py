"""Set of connected observers and fan-out of pushed messages."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Protocol

from aioturntable.models.core import ListenerCountMessage, ListenerCountPayload
from aioturntable.models.types import ServerMessage

logger = logging.getLogger(__name__)


class Observer(Protocol):
    """Anything that can receive pushed messages."""

    @property
    def connection_id(self) -> str:
        """Unique id of this connection."""
        ...

    def send_message(self, message: ServerMessage) -> None:
        """Enqueue a message without blocking."""
        ...


class ConnectionRegistry:
    """
    Tracks the currently attached observers.

    Membership changes only through join() and leave(); the number of members is the
    listener count reported to everyone.
    """

    _observers: dict[str, Observer]
    """Observers keyed by connection id."""

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._observers = {}

    def __len__(self) -> int:
        return len(self._observers)

    def __contains__(self, observer: object) -> bool:
        connection_id = getattr(observer, "connection_id", None)
        return connection_id is not None and self._observers.get(connection_id) is observer

    @property
    def listener_count(self) -> int:
        """Number of connected observers."""
        return len(self._observers)

    def join(self, observer: Observer, welcome: Callable[[], ServerMessage]) -> bool:
        """
        Register an observer.

        The welcome message is built after registration, so it already includes the
        new observer in the listener count. It is delivered to the joining observer
        only, then the new listener count is broadcast to all members.

        Returns:
            False if the observer was already registered.
        """
        if observer.connection_id in self._observers:
            return False
        self._observers[observer.connection_id] = observer
        logger.info("Listener connected. Total: %d", len(self._observers))
        observer.send_message(welcome())
        self.broadcast_listener_count()
        return True

    def leave(self, observer: Observer) -> bool:
        """
        Unregister an observer and broadcast the new listener count.

        Returns:
            False if the observer was not registered.
        """
        if self._observers.get(observer.connection_id) is not observer:
            return False
        del self._observers[observer.connection_id]
        logger.info("Listener disconnected. Total: %d", len(self._observers))
        self.broadcast_listener_count()
        return True

    def broadcast(self, message: ServerMessage) -> None:
        """Enqueue a message for every observer."""
        # Iterate a copy, observers may leave while we deliver
        for observer in list(self._observers.values()):
            try:
                observer.send_message(message)
            except Exception:
                logger.exception("Error delivering message to %s", observer.connection_id)

    def broadcast_listener_count(self) -> None:
        """Push the current listener count to every observer."""
        self.broadcast(
            ListenerCountMessage(payload=ListenerCountPayload(listeners=len(self._observers)))
        )
