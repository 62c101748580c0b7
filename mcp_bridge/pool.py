"""Lazy pool of MCP sessions, at most one per configured server.

Concurrent first calls for the same server share a single connection attempt.
A failed attempt is forgotten immediately so the next call can retry.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, Mapping

from .clients import Connector, Session, connect_session
from .config import ServerConfig
from .errors import BridgeError, ServerConnectionError, UnknownServerError

logger = logging.getLogger(__name__)


@dataclass
class _PendingConnection:
    task: "asyncio.Task[Session]"
    waiters: int = 0


class ConnectionPool:
    def __init__(self, servers: Mapping[str, ServerConfig], connector: Connector = connect_session) -> None:
        self._servers: Dict[str, ServerConfig] = dict(servers)
        self._connector = connector
        self._sessions: Dict[str, Session] = {}
        self._pending: Dict[str, _PendingConnection] = {}
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def is_connected(self, server_name: str) -> bool:
        return server_name in self._sessions

    def status(self) -> Dict[str, bool]:
        return {name: name in self._sessions for name in self._servers}

    async def get_session(self, server_name: str) -> Session:
        session = self._sessions.get(server_name)
        if session is not None:
            return session

        # No await between the lookup and the insert: concurrent callers see the same entry.
        pending = self._pending.get(server_name)
        if pending is None:
            if self._closed:
                raise ServerConnectionError(server_name, "connection pool is closed")
            config = self._servers.get(server_name)
            if config is None:
                raise UnknownServerError(server_name)
            pending = _PendingConnection(asyncio.ensure_future(self._connect(server_name, config)))
            self._pending[server_name] = pending

        return await self._wait(server_name, pending)

    async def _connect(self, server_name: str, config: ServerConfig) -> Session:
        try:
            try:
                session = await self._connector(server_name, config)
            except BridgeError:
                raise
            except Exception as exc:
                raise ServerConnectionError(server_name, exc) from exc

            if self._closed:
                await self._close_session(server_name, session)
                raise ServerConnectionError(server_name, "connection pool closed while connecting")

            self._sessions[server_name] = session
            return session
        finally:
            self._pending.pop(server_name, None)

    async def _wait(self, server_name: str, pending: _PendingConnection) -> Session:
        pending.waiters += 1
        try:
            return await asyncio.shield(pending.task)
        except asyncio.CancelledError:
            if pending.waiters == 1 and not pending.task.done():
                logger.info("Cancelling connection attempt to %s: no callers left", server_name)
                pending.task.cancel()
            raise
        finally:
            pending.waiters -= 1

    async def _close_session(self, server_name: str, session: Session) -> None:
        try:
            await session.close()
            logger.info("Disconnected from MCP server %s", server_name)
        except Exception:
            logger.warning("Error closing MCP server %s", server_name, exc_info=True)

    async def close_all(self) -> None:
        """Close every live session (best effort). Safe to call more than once."""
        self._closed = True
        sessions = list(self._sessions.items())
        self._sessions.clear()
        self._pending.clear()
        for server_name, session in sessions:
            await self._close_session(server_name, session)

    async def __aenter__(self) -> "ConnectionPool":
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close_all()


__all__ = ["ConnectionPool"]
