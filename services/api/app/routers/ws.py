"""WebSocket endpoint that mirrors newly persisted chat messages."""

import logging
import uuid

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from jose import JWTError

from app.config import get_settings
from app.dependencies import decode_principal
from app.services.ws_manager import ws_manager

logger = logging.getLogger(__name__)

router = APIRouter()

# Application close codes (4000-4999 range)
CLOSE_NO_TOKEN = 4001
CLOSE_BAD_TOKEN = 4003


def _authenticate_ws(token: str) -> uuid.UUID:
    """Browsers cannot set headers on a WebSocket, so the access token rides in the query string."""
    return decode_principal(token, get_settings()).user_id


@router.websocket("/ws/messages")
async def chat_socket(websocket: WebSocket):
    """Receive ``{"type": "message", ...}`` frames for the caller's conversations.

    Sending is done over HTTP (``POST /api/v1/messages``); the only frame a
    client sends here is ``{"type": "ping"}``, answered with ``{"type": "pong"}``.
    """
    token = websocket.query_params.get("token")
    if not token:
        await websocket.close(code=CLOSE_NO_TOKEN, reason="Missing token")
        return
    try:
        user_id = _authenticate_ws(token)
    except (JWTError, ValueError) as e:
        logger.warning("Chat socket rejected: %s", e)
        await websocket.close(code=CLOSE_BAD_TOKEN, reason="Authentication failed")
        return

    await ws_manager.attach(user_id, websocket)
    try:
        while True:
            frame = await websocket.receive_json()
            if isinstance(frame, dict) and frame.get("type") == "ping":
                await websocket.send_json({"type": "pong"})
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.debug("Chat socket error for user=%s", user_id, exc_info=True)
    finally:
        ws_manager.detach(user_id, websocket)
