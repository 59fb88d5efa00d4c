"""Remote event stream for real-time sync notifications.

This module provides:
- RemoteEventStream: WebSocket client that receives lifecycle and change
  events from remote storage and hands them to a handler
- parse_message: Decode one wire message into a RemoteEvent

Architecture:
    Server ─push─► RemoteEventStream ─task per event─► ReconciliationOrchestrator.dispatch

Each event is scheduled as its own task, so handlers interleave on the
event loop exactly like callbacks registered on the storage library would.
Losing the socket reports NETWORK_OFFLINE; getting it back reports
NETWORK_ONLINE.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import ssl
from typing import TYPE_CHECKING, Any

import websockets
from websockets.exceptions import WebSocketException

from savrsync.client.sync.types import (
    ChangeEvent,
    RemoteEvent,
    RemoteEventHandler,
    RemoteEventType,
)

if TYPE_CHECKING:
    from websockets.asyncio.client import ClientConnection

    from savrsync.core.config import RemoteConfig

logger = logging.getLogger(__name__)


def parse_message(message: str | bytes, scope: str = "") -> RemoteEvent | None:
    """Decode one event stream message.

    Supported messages:
    - {"type": "change", "path": "...", "oldValue": ..., "newValue": ..., "origin": "..."}
    - {"type": "connected", "userAddress": "..."}
    - {"type": "error", "message": "..."}
    - {"type": "<any other RemoteEventType value>", ...}

    Change paths may be absolute ("/savr/saves/...") or relative to the
    scope; they are returned relative to the scope. Changes outside the
    scope are ignored.

    Args:
        message: Raw message.
        scope: Scope folder name.

    Returns:
        The event, or None if the message is invalid or not for us.
    """
    if isinstance(message, bytes):
        message = message.decode("utf-8")
    try:
        data = json.loads(message)
    except json.JSONDecodeError:
        logger.warning("Invalid message received: %s", message[:100])
        return None
    if not isinstance(data, dict):
        logger.warning("Invalid message received: %s", message[:100])
        return None

    try:
        event_type = RemoteEventType(data.get("type"))
    except ValueError:
        logger.debug("Ignoring message type %r", data.get("type"))
        return None

    details: dict[str, Any] = {
        k: v for k, v in data.items() if k not in ("type", "path", "oldValue", "newValue")
    }

    if event_type == RemoteEventType.CHANGE:
        path = data.get("path")
        if not isinstance(path, str) or not path:
            logger.warning("Invalid change message: %s", data)
            return None
        relative = _scope_relative(path, scope)
        if relative is None:
            logger.debug("Ignoring change outside scope: %s", path)
            return None
        return RemoteEvent.changed(ChangeEvent(
            path=relative,
            old_value=data.get("oldValue"),
            new_value=data.get("newValue"),
            origin=str(data.get("origin", "remote")),
        ))

    if event_type == RemoteEventType.CONNECTED:
        return RemoteEvent(event_type, user_address=data.get("userAddress"), details=details)

    if event_type == RemoteEventType.ERROR:
        return RemoteEvent(event_type, error=str(data.get("message", "")), details=details)

    return RemoteEvent(event_type, details=details)


def _scope_relative(path: str, scope: str) -> str | None:
    if not path.startswith("/"):
        return path
    prefix = f"/{scope}/" if scope else "/"
    if not path.startswith(prefix):
        return None
    return path[len(prefix):]


class RemoteEventStream:
    """WebSocket client for remote storage events.

    Usage:
        stream = RemoteEventStream(config, orchestrator.dispatch)
        runner = asyncio.create_task(stream.run())

        # Events are dispatched automatically
        # ...

        await stream.stop()
    """

    def __init__(
        self,
        config: RemoteConfig,
        handler: RemoteEventHandler,
        reconnect_delay: float = 5.0,
    ) -> None:
        """Initialize the event stream.

        Args:
            config: Remote configuration with URL and token.
            handler: Coroutine function called with every event.
            reconnect_delay: Delay between reconnection attempts.
        """
        self._config = config
        self._handler = handler
        self._reconnect_delay = reconnect_delay

        # Connection state
        self._ws: ClientConnection | None = None
        self._connected = False
        self._should_run = False
        self._stop_event = asyncio.Event()  # For interruptible sleep

        # Handler tasks still running
        self._tasks: set[asyncio.Task[Any]] = set()

    @property
    def connected(self) -> bool:
        """Check if currently connected."""
        return self._connected

    @property
    def ws_url(self) -> str:
        """Get the WebSocket URL."""
        return self._config.ws_url

    @property
    def pending(self) -> int:
        """Get the number of handler tasks still running."""
        return len(self._tasks)

    def emit(self, event: RemoteEvent) -> asyncio.Task[Any]:
        """Schedule the handler for one event."""
        task = asyncio.ensure_future(self._handler(event))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> None:
        """Wait for every scheduled handler to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def run(self) -> None:
        """Main connection loop with automatic reconnection."""
        self._should_run = True
        self._stop_event.clear()
        was_connected = False

        while self._should_run:
            try:
                await self._connect()

                if self._connected:
                    if was_connected:
                        logger.info("Reconnected to event stream")
                        self.emit(RemoteEvent(RemoteEventType.NETWORK_ONLINE))
                    was_connected = True
                    await self._listen_for_messages()

            except WebSocketException as e:
                logger.debug("WebSocket error: %s", e)
            except OSError as e:
                logger.debug("Connection error: %s", e)

            lost = self._connected
            self._connected = False

            if not self._should_run:
                break

            if lost:
                logger.warning("Event stream connection lost")
                self.emit(RemoteEvent(RemoteEventType.NETWORK_OFFLINE))

            logger.info("Event stream reconnecting in %.0fs...", self._reconnect_delay)
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._reconnect_delay)
                break
            except TimeoutError:
                pass

        await self.drain()

    async def stop(self) -> None:
        """Stop the stream and close the connection."""
        self._should_run = False
        self._stop_event.set()
        await self._close_connection()
        logger.info("Event stream stopped")

    async def _connect(self) -> None:
        """Establish WebSocket connection."""
        ssl_context: ssl.SSLContext | None = None
        if self.ws_url.startswith("wss://"):
            ssl_context = ssl.create_default_context()
            if not self._config.verify_ssl:
                ssl_context.check_hostname = False
                ssl_context.verify_mode = ssl.CERT_NONE

        self._ws = await websockets.connect(
            self.ws_url,
            ssl=ssl_context,
            additional_headers={"Authorization": f"Bearer {self._config.token}"},
            open_timeout=self._config.timeout,
            close_timeout=5,
        )
        self._connected = True
        logger.info("Event stream connected")

    async def _listen_for_messages(self) -> None:
        """Listen for incoming messages from server."""
        while self._should_run and self._ws:
            try:
                message = await asyncio.wait_for(self._ws.recv(), timeout=30.0)
            except TimeoutError:
                continue
            except websockets.ConnectionClosed:
                logger.info("Connection closed by server")
                break
            self._handle_message(message)

    def _handle_message(self, message: str | bytes) -> None:
        event = parse_message(message, self._config.scope)
        if event is None:
            return
        logger.debug("Received %r", event)
        self.emit(event)

    async def _close_connection(self) -> None:
        """Close the WebSocket connection."""
        if self._ws:
            with contextlib.suppress(WebSocketException):
                await self._ws.close()
            self._ws = None
