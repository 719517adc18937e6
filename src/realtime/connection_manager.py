"""
WebSocket Connection Manager

Tracks which users have live sockets and pushes envelopes to them.
A user may hold any number of concurrent connections (tabs, devices).
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Set

from fastapi import WebSocket

from .events import Envelope, EnvelopeType, connected_envelope, heartbeat_envelope

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class ConnectionInfo:
    """One live socket held by a user. Compared by identity."""
    websocket: WebSocket
    user_id: str
    role: str = ""
    alive: bool = True
    connected_at: datetime = field(default_factory=datetime.utcnow)
    last_activity: datetime = field(default_factory=datetime.utcnow)

    # Stats
    messages_sent: int = 0
    messages_received: int = 0

    # Serializes sends so frames reach this socket in FIFO order
    send_lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    async def send(self, payload: Dict[str, Any]):
        async with self.send_lock:
            await self.websocket.send_json(payload)
        self.messages_sent += 1
        self.last_activity = datetime.utcnow()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "role": self.role,
            "alive": self.alive,
            "connected_at": self.connected_at.isoformat(),
            "last_activity": self.last_activity.isoformat(),
            "messages_sent": self.messages_sent,
            "messages_received": self.messages_received,
        }


class ConnectionManager:
    """
    Registry of live connections keyed by user id.

    The index is guarded by an asyncio.Lock. Sends happen outside the lock
    on a snapshot of the user's connections, so a slow socket never blocks
    registration. A connection that fails a send is marked dead and pruned;
    broadcast never raises.
    """

    def __init__(self):
        self._connections: Dict[str, Set[ConnectionInfo]] = {}
        self._lock = asyncio.Lock()

    # =========================================================================
    # REGISTRY
    # =========================================================================

    async def register(self, user_id: str, connection: ConnectionInfo):
        """Add a connection to the user's bucket."""
        async with self._lock:
            self._connections.setdefault(user_id, set()).add(connection)
            count = len(self._connections[user_id])
        logger.debug(f"[WS] Registered connection for user={user_id} ({count} open)")

    async def unregister(self, user_id: str, connection: ConnectionInfo):
        """Remove exactly this connection. Unknown connections are ignored."""
        connection.alive = False
        async with self._lock:
            bucket = self._connections.get(user_id)
            if bucket is None:
                return
            bucket.discard(connection)
            if not bucket:
                del self._connections[user_id]

    def is_online(self, user_id: str) -> bool:
        bucket = self._connections.get(user_id)
        return bool(bucket) and any(c.alive for c in bucket)

    async def broadcast(self, user_id: str, payload: Dict[str, Any]) -> bool:
        """
        Send payload to every live connection of a user.

        Returns:
            True if at least one connection accepted the frame.
        """
        async with self._lock:
            connections = [c for c in self._connections.get(user_id, ()) if c.alive]

        if not connections:
            return False

        delivered = 0
        dead: List[ConnectionInfo] = []
        for connection in connections:
            try:
                await connection.send(payload)
                delivered += 1
            except Exception as e:
                logger.warning(f"[WS] Failed to send to user={user_id}: {e}")
                connection.alive = False
                dead.append(connection)

        for connection in dead:
            await self.unregister(user_id, connection)

        logger.debug(
            f"[WS] Sent {payload.get('type')} to user={user_id} "
            f"({delivered}/{len(connections)} connections)"
        )
        return delivered > 0

    # =========================================================================
    # SOCKET LIFECYCLE
    # =========================================================================

    async def connect(self, websocket: WebSocket, user_id: str, role: str = "") -> ConnectionInfo:
        """Accept a socket, register it and send the connected envelope."""
        await websocket.accept()

        connection = ConnectionInfo(websocket=websocket, user_id=user_id, role=role)
        await self.register(user_id, connection)

        logger.info(f"[WS] Connected: user={user_id} role={role}")

        try:
            await connection.send(connected_envelope(user_id, role).to_dict())
        except Exception as e:
            logger.warning(f"[WS] Failed to greet user={user_id}: {e}")
            await self.unregister(user_id, connection)

        return connection

    async def disconnect(self, user_id: str, connection: ConnectionInfo, close: bool = False):
        """Unregister a connection, optionally closing the socket."""
        await self.unregister(user_id, connection)
        if close:
            try:
                await connection.websocket.close()
            except Exception as e:
                logger.debug(f"[WS] Close failed for user={user_id}: {e}")
        logger.info(f"[WS] Disconnected: user={user_id}")

    async def handle_message(self, connection: ConnectionInfo, envelope: Envelope):
        """Handle connection-level inbound envelopes (heartbeat)."""
        connection.messages_received += 1
        connection.last_activity = datetime.utcnow()

        if envelope.type == EnvelopeType.HEARTBEAT:
            try:
                await connection.send(heartbeat_envelope().to_dict())
            except Exception as e:
                logger.warning(f"[WS] Heartbeat reply failed for user={connection.user_id}: {e}")
                await self.unregister(connection.user_id, connection)

    def get_connections(self, user_id: str) -> List[ConnectionInfo]:
        return list(self._connections.get(user_id, ()))

    def get_stats(self) -> Dict[str, Any]:
        """Get connection statistics."""
        return {
            "online_users": len(self._connections),
            "total_connections": sum(len(b) for b in self._connections.values()),
            "connections_by_user": {
                user_id: len(bucket) for user_id, bucket in self._connections.items()
            },
        }

    async def cleanup_stale_connections(self, max_idle_seconds: int = 300) -> int:
        """
        Close connections with no activity for max_idle_seconds.

        Returns:
            Number of connections closed.
        """
        now = datetime.utcnow()
        async with self._lock:
            stale = [
                connection
                for bucket in self._connections.values()
                for connection in bucket
                if (now - connection.last_activity).total_seconds() > max_idle_seconds
            ]

        for connection in stale:
            await self.disconnect(connection.user_id, connection, close=True)
            logger.info(f"[WS] Cleaned up stale connection for user {connection.user_id}")

        return len(stale)
