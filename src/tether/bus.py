""" The local dispatch bus. Transformed messages are published here; any
    interested consumer, including the request coordinator watching for
    completion signals, subscribes to receive them.
"""

from __future__ import annotations

import logging
import threading
import uuid
from typing import Callable, Dict, Optional, Tuple

from .protocol.message import Message, coerce

logger = logging.getLogger(__name__)

Handler = Callable[[Message], None]


class Bus:
    """In-process publish/subscribe bus for Standard Messages."""

    def __init__(self):
        self._lock = threading.RLock()
        self._subscribers: Dict[str, Tuple[Optional[str], Handler]] = {}

    def __len__(self) -> int:
        return len(self._subscribers)

    def subscribe(self, handler: Handler, type: Optional[str] = None) -> str:
        """ Invoke *handler* for every published message, or only for those
            whose type is *type* if one is given. The returned subscription
            id is the argument to :func:`unsubscribe`.
        """

        sub_id = str(uuid.uuid4())
        with self._lock:
            self._subscribers[sub_id] = (type, handler)
        return sub_id

    def unsubscribe(self, sub_id: str) -> None:
        with self._lock:
            self._subscribers.pop(sub_id, None)

    def publish(self, message) -> Message:
        """ Deliver *message* to every matching subscriber, in subscription
            order. A subscriber raising an exception does not prevent
            delivery to the others.
        """

        message = coerce(message)
        handlers = self._copy_handlers(message.type)

        for sub_id, handler in handlers:
            try:
                handler(message)
            except Exception:
                logger.error("bus subscriber %s failed on %s", sub_id, message.type, exc_info=True)

        return message

    def _copy_handlers(self, type: str):
        with self._lock:
            handlers = [
                (sub_id, handler)
                for sub_id, (wanted, handler) in self._subscribers.items()
                if wanted is None or wanted == type
            ]
        return handlers
