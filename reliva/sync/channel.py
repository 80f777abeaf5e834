"""Client end of the reviews live update connection.

One channel per page view. It is opened once the viewer is known, sends the
``auth`` handshake as soon as the socket connects, and is closed when the
view goes away. A channel that fails to connect, or drops, simply stays
closed; callers keep working against local state.
"""
import logging
from threading import Lock
from typing import Callable, Optional

import socketio

from reliva.config import Config
from reliva.sync.messages import AuthIntent, Event, Intent, MessageError, decode_event, encode

logger = logging.getLogger(__name__)

FRAME_EVENT = "message"


class LiveUpdateChannel:
    def __init__(self, on_event: Callable[[Event], None], url: Optional[str] = None,
                 connect_timeout: Optional[float] = None, client=None, config=Config):
        self.url = url or config.WS_BASE
        self.connect_timeout = connect_timeout if connect_timeout is not None else config.WS_CONNECT_TIMEOUT
        self._on_event = on_event
        self._client = client if client is not None else socketio.Client(
            reconnection=False,
            logger=config.WS_DEBUG,
        )
        self._handshake = None
        self._connected = False
        self._lock = Lock()

        self._client.on("connect", self._handle_connect)
        self._client.on("connect_error", self._handle_connect_error)
        self._client.on("disconnect", self._handle_disconnect)
        self._client.on(FRAME_EVENT, self._handle_frame)

    @property
    def is_open(self) -> bool:
        return self._connected

    def open(self, handshake: AuthIntent) -> bool:
        if self._connected:
            logger.debug("Channel already open")
            return True

        self._handshake = handshake
        try:
            self._client.connect(
                self.url,
                transports=["websocket"],
                wait_timeout=self.connect_timeout,
            )
        except socketio.exceptions.ConnectionError as e:
            logger.warning("Live updates unavailable, continuing locally: %s", e)
            self._mark_closed()
            # a connect that timed out may still be half-open
            self._client.disconnect()
            return False
        return self._connected

    def send(self, intent: Intent) -> bool:
        if not self._connected:
            logger.debug("Channel closed, %s not sent", intent.type)
            return False
        try:
            self._client.emit(FRAME_EVENT, encode(intent))
        except socketio.exceptions.SocketIOError as e:
            logger.warning("Could not send %s: %s", intent.type, e)
            return False
        return True

    def close(self):
        was_connected = self._connected
        self._mark_closed()
        if was_connected:
            self._client.disconnect()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def _mark_closed(self):
        with self._lock:
            self._connected = False

    def _handle_connect(self):
        with self._lock:
            self._connected = True
        if self._handshake is not None:
            self.send(self._handshake)

    def _handle_connect_error(self, data=None):
        logger.warning("Live update connection refused: %s", data)
        self._mark_closed()

    def _handle_disconnect(self, *args):
        logger.info("Live update channel disconnected")
        self._mark_closed()

    def _handle_frame(self, data):
        try:
            event = decode_event(data)
        except MessageError as e:
            logger.error("Failed to parse live update frame: %s", e)
            return
        self._on_event(event)
