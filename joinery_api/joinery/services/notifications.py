"""
Notification fan-out to WebSocket subscribers.

Routes call NotificationDispatcher after their transaction has committed.
Delivery is best effort: a broken socket is dropped and a failing dispatch is
logged, never raised.
"""
from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import Any, Dict, List, Optional, Set

from fastapi.encoders import jsonable_encoder
from starlette.websockets import WebSocket, WebSocketState

from joinery.core.settings import get_app_settings
from joinery.schemas.realtime import WsEnvelope

logger = logging.getLogger(__name__)

NOTIFICATIONS_TOPIC = "notifications"


class BroadcastManager:
    """In-process registry of WebSocket subscribers per topic."""

    def __init__(self) -> None:
        self._subscribers: Dict[str, Set[WebSocket]] = defaultdict(set)
        self._lock = asyncio.Lock()

    # PUBLIC_INTERFACE
    def subscriber_count(self, topic: str) -> int:
        return len(self._subscribers.get(topic, ()))

    # PUBLIC_INTERFACE
    async def connect(self, topic: str, websocket: WebSocket) -> None:
        async with self._lock:
            self._subscribers[topic].add(websocket)
        logger.info("Subscriber joined topic=%s (now %d)", topic, self.subscriber_count(topic))

    # PUBLIC_INTERFACE
    async def disconnect(self, topic: str, websocket: WebSocket) -> None:
        async with self._lock:
            self._subscribers.get(topic, set()).discard(websocket)
        logger.info("Subscriber left topic=%s (now %d)", topic, self.subscriber_count(topic))

    # PUBLIC_INTERFACE
    async def broadcast(self, topic: str, message: Dict[str, Any]) -> int:
        """Send `message` as JSON to every live subscriber; returns how many received it."""
        async with self._lock:
            targets = list(self._subscribers.get(topic, ()))

        dead: List[WebSocket] = []
        delivered = 0
        for ws in targets:
            if WebSocketState.DISCONNECTED in (ws.client_state, ws.application_state):
                dead.append(ws)
                continue
            try:
                await ws.send_json(message)
                delivered += 1
            except Exception:
                logger.warning("Dropping websocket after failed send on topic=%s", topic, exc_info=True)
                dead.append(ws)

        if dead:
            async with self._lock:
                self._subscribers[topic].difference_update(dead)
        return delivered


broadcast_manager = BroadcastManager()


class NotificationDispatcher:
    """Publishes event envelopes on the notifications topic."""

    def __init__(self, manager: BroadcastManager = broadcast_manager, user_id: Optional[str] = None) -> None:
        self.manager = manager
        self.user_id = user_id

    # PUBLIC_INTERFACE
    async def dispatch(self, event: str, payload: Dict[str, Any]) -> bool:
        """Returns False when notifications are disabled or delivery failed."""
        if not get_app_settings().NOTIFICATIONS_ENABLED:
            return False
        try:
            envelope = WsEnvelope(type=event, payload=jsonable_encoder(payload), user_id=self.user_id)
            await self.manager.broadcast(NOTIFICATIONS_TOPIC, envelope.model_dump(mode="json"))
        except Exception:
            logger.exception("Notification dispatch failed for event=%s", event)
            return False
        return True
