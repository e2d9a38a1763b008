from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from joinery.core.security import get_token_subject
from joinery.services.notifications import NOTIFICATIONS_TOPIC, broadcast_manager

logger = logging.getLogger(__name__)

router = APIRouter(tags=["WebSocket"])

# Close code sent when the token query parameter is missing or invalid.
WS_UNAUTHORIZED = 4401

NOTIFICATION_EVENTS = [
    "materials_to_order.created",
    "materials_to_order.completed",
    "materials_to_order.supplier_ordered",
    "purchase_order.created",
    "purchase_order.received",
    "stock_transaction.created",
]


# PUBLIC_INTERFACE
@router.get(
    "/api/v1/websocket-info",
    response_model=Dict[str, Any],
    summary="WebSocket usage",
    description="Connection details for the notification feed, which OpenAPI cannot describe.",
)
def websocket_info() -> Dict[str, Any]:
    return {
        "path": "/ws/notifications",
        "query": ["token"],
        "message_format": "{ type: string, payload: object, at: ISO-8601, user_id?: string }",
        "server_to_client": NOTIFICATION_EVENTS,
        "client_to_server": ["ping"],
    }


# PUBLIC_INTERFACE
@router.websocket("/ws/notifications")
async def ws_notifications(websocket: WebSocket):
    """
    Push stock, materials-to-order and purchase order events to staff clients.

    The connection is accepted first and closed with 4401 when the `token`
    query parameter is not a valid JWT. Clients may send "ping" and get
    "pong" back; anything else is ignored.
    """
    await websocket.accept()
    token = websocket.query_params.get("token")
    user_id = get_token_subject(token) if token else None
    if not user_id:
        await websocket.close(code=WS_UNAUTHORIZED)
        return

    await broadcast_manager.connect(NOTIFICATIONS_TOPIC, websocket)
    logger.info("Notification subscriber connected user=%s", user_id)
    try:
        while True:
            message = await websocket.receive_text()
            if message.strip().lower() == "ping":
                await websocket.send_text("pong")
    except WebSocketDisconnect:
        pass
    finally:
        await broadcast_manager.disconnect(NOTIFICATIONS_TOPIC, websocket)
