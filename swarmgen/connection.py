"""
ConnectionManager - Lifecycle of the duplex generation connection.
"""

import asyncio
import json
import logging
from enum import Enum
from typing import Mapping, Optional, Union

import aiohttp

from .errors import SwarmConnectionError


class ConnectionState(Enum):
    CLOSED = 'closed'
    CONNECTING = 'connecting'
    OPEN = 'open'


class ConnectionManager:
    """
    Owns one websocket to the generation endpoint.
    
    Closed -> Connecting -> Open -> Closed. A connection is used for a
    single generation call and is closed exactly once; closing again is
    a no-op.
    """
    
    def __init__(
        self,
        http: aiohttp.ClientSession,
        url: str,
        timeout: float = 30.0,
        max_message_size: int = 64 * 1024 * 1024,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize connection manager.
        
        Args:
            http: HTTP session the websocket is opened from
            url: Websocket URL of the generation endpoint
            timeout: Seconds allowed for the connect handshake
            max_message_size: Largest logical message accepted from the backend
            logger: Optional logger instance
        """
        self.http = http
        self.url = url
        self.timeout = timeout
        self.max_message_size = max_message_size
        self.logger = logger or logging.getLogger(__name__)
        self.state = ConnectionState.CLOSED
        self._ws: Optional[aiohttp.ClientWebSocketResponse] = None
    
    @property
    def is_open(self) -> bool:
        return self.state == ConnectionState.OPEN
    
    async def ensure_connected(self) -> None:
        """Open the websocket unless it is already open."""
        if self.state == ConnectionState.OPEN:
            return
        
        self.state = ConnectionState.CONNECTING
        try:
            self._ws = await asyncio.wait_for(
                self.http.ws_connect(self.url, max_msg_size=self.max_message_size),
                timeout=self.timeout,
            )
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            self.state = ConnectionState.CLOSED
            raise SwarmConnectionError(f"Could not connect to {self.url}: {e}") from e
        
        self.state = ConnectionState.OPEN
        self.logger.info(f"Connected: {self.url}")
    
    async def send(self, request: Mapping[str, object]) -> None:
        """Serialize a request and send it as one text message."""
        if not self.is_open:
            raise SwarmConnectionError("Cannot send on a connection that is not open")
        
        payload = json.dumps(request)
        try:
            await self._ws.send_str(payload)
        except (aiohttp.ClientError, ConnectionResetError, OSError) as e:
            raise SwarmConnectionError(f"Send failed: {e}") from e
        self.logger.debug(f"Sent request ({len(payload)} bytes)")
    
    async def receive(self) -> Optional[Union[str, bytes]]:
        """
        Read the next complete logical message.
        
        Fragmented frames are reassembled by the transport before this
        returns; a partial payload is never handed out.
        
        Returns:
            Message text (or bytes for binary messages), or None once the
            backend has closed the connection
        """
        if not self.is_open:
            raise SwarmConnectionError("Cannot receive on a connection that is not open")
        
        try:
            message = await self._ws.receive()
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            raise SwarmConnectionError(f"Receive failed: {e}") from e
        
        if message.type in (aiohttp.WSMsgType.TEXT, aiohttp.WSMsgType.BINARY):
            return message.data
        
        if message.type == aiohttp.WSMsgType.ERROR:
            raise SwarmConnectionError(f"Connection error: {message.data}")
        
        # CLOSE / CLOSING / CLOSED
        self.logger.info(f"Backend closed the connection ({message.data})")
        await self.close("Closed by backend")
        return None
    
    async def close(self, reason: str = '') -> None:
        """Close the websocket gracefully. No-op when already closed."""
        if self.state == ConnectionState.CLOSED:
            return
        
        self.state = ConnectionState.CLOSED
        ws, self._ws = self._ws, None
        if ws is None:
            return
        
        try:
            await ws.close(code=aiohttp.WSCloseCode.OK, message=reason.encode('utf-8'))
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            self.logger.warning(f"Error while closing connection: {e}")
        self.logger.info(f"Connection closed: {reason}")
