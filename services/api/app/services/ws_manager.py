"""Live chat fan-out over WebSockets.

Messages are persisted before they get here; this module only mirrors them to
participants who happen to be connected. Every API worker subscribes to one
Redis channel, so a message sent through worker A reaches a socket held by
worker B.
"""

import asyncio
import json
import logging
import uuid
from collections import defaultdict

import redis.asyncio as aioredis
from fastapi import WebSocket

from app.config import get_settings

logger = logging.getLogger(__name__)

CHAT_CHANNEL = "eventhub:chat"


class ChatFanout:
    """Tracks this worker's sockets per user and relays chat envelopes from Redis."""

    def __init__(self) -> None:
        self._sockets: defaultdict[uuid.UUID, set[WebSocket]] = defaultdict(set)
        self._subscription: aioredis.client.PubSub | None = None
        self._relay: asyncio.Task | None = None

    def connected_users(self) -> set[uuid.UUID]:
        return set(self._sockets)

    async def start(self) -> None:
        r = aioredis.from_url(get_settings().redis_url, decode_responses=True)
        subscription = r.pubsub()
        await subscription.subscribe(CHAT_CHANNEL)
        self._subscription = subscription
        self._relay = asyncio.create_task(self._relay_loop())
        logger.info("Chat fan-out listening on %s", CHAT_CHANNEL)

    async def stop(self) -> None:
        if self._relay is not None:
            self._relay.cancel()
            try:
                await self._relay
            except asyncio.CancelledError:
                pass
            self._relay = None
        if self._subscription is not None:
            await self._subscription.unsubscribe(CHAT_CHANNEL)
            await self._subscription.close()
            self._subscription = None

        sockets = [ws for user_sockets in self._sockets.values() for ws in user_sockets]
        self._sockets.clear()
        for ws in sockets:
            try:
                await ws.close()
            except Exception:
                logger.debug("Socket already closed", exc_info=True)

    async def attach(self, user_id: uuid.UUID, ws: WebSocket) -> None:
        await ws.accept()
        self._sockets[user_id].add(ws)
        logger.debug("Chat socket opened for user=%s (%d open)", user_id, len(self._sockets[user_id]))

    def detach(self, user_id: uuid.UUID, ws: WebSocket) -> None:
        user_sockets = self._sockets.get(user_id)
        if user_sockets is None:
            return
        user_sockets.discard(ws)
        if not user_sockets:
            del self._sockets[user_id]

    async def deliver(self, user_id: uuid.UUID, payload: dict) -> int:
        """Send to every local socket of one user. Returns how many accepted it."""
        delivered = 0
        for ws in list(self._sockets.get(user_id, ())):
            try:
                await ws.send_json(payload)
                delivered += 1
            except Exception:
                self.detach(user_id, ws)
        return delivered

    async def _relay_loop(self) -> None:
        assert self._subscription is not None
        try:
            async for item in self._subscription.listen():
                if item["type"] != "message":
                    continue
                try:
                    envelope = json.loads(item["data"])
                    for recipient in envelope["recipients"]:
                        await self.deliver(uuid.UUID(recipient), envelope["payload"])
                except (ValueError, KeyError, TypeError):
                    logger.exception("Dropping malformed chat envelope")
        except asyncio.CancelledError:
            return

    async def publish(self, recipients: list[uuid.UUID | None], payload: dict) -> None:
        """Broadcast one envelope to all workers. A Redis outage never fails the request."""
        envelope = {
            "recipients": sorted({str(r) for r in recipients if r is not None}),
            "payload": payload,
        }
        r = aioredis.from_url(get_settings().redis_url, decode_responses=True)
        try:
            await r.publish(CHAT_CHANNEL, json.dumps(envelope))
        except Exception as e:
            logger.warning("Chat fan-out publish failed: %s", e)
        finally:
            await r.aclose()


ws_manager = ChatFanout()
