import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status

from ..auth import identity_from_token, is_permitted
from ..errors import AuthenticationError
from ..services.notification_service import Subscription, get_notification_hub

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ws", tags=["Notifications"])


async def _forward_events(websocket: WebSocket, subscription: Subscription):
    async for event in subscription:
        await websocket.send_json(event.to_payload())


async def _stop_forwarding(pump: asyncio.Task, account_id: int):
    """Cancel the forwarding task and collect its outcome"""
    pump.cancel()
    try:
        await pump
    except asyncio.CancelledError:
        pass
    except Exception as e:
        logger.warning(f"⚠️ Notification delivery to account {account_id} failed: {e}")


@router.websocket("/notifications")
async def queue_notifications(websocket: WebSocket, token: Optional[str] = None):
    """Live appointment status updates for the authenticated account"""
    try:
        identity = identity_from_token(token)
    except AuthenticationError as e:
        logger.warning(f"⚠️ Notification socket rejected: {e.message}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    if not is_permitted(identity.role, "subscribe_notifications"):
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    hub = get_notification_hub()
    subscription = hub.subscribe(identity.id)
    await websocket.accept()

    pump = asyncio.create_task(_forward_events(websocket, subscription))
    try:
        # Client messages are ignored; reading only detects the disconnect
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.info(f"Notification socket closed for account {identity.id}")
    finally:
        await _stop_forwarding(pump, identity.id)
        subscription.close()
