"""
SessionProvider - Acquires a fresh session token for each generation.
"""

import asyncio
import logging
from typing import Optional

import aiohttp

from .errors import ProtocolError, SwarmConnectionError


class SessionProvider:
    """
    One-shot session acquisition via the backend's session endpoint.
    
    Tokens are never cached; every generation call acquires its own.
    """
    
    SESSION_FIELD = 'session_id'
    
    def __init__(
        self,
        http: aiohttp.ClientSession,
        url: str,
        timeout: float = 30.0,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize session provider.
        
        Args:
            http: HTTP session used for the request
            url: Full URL of the session endpoint
            timeout: Seconds allowed for the exchange
            logger: Optional logger instance
        """
        self.http = http
        self.url = url
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)
    
    async def acquire(self) -> str:
        """
        Request a new session token.
        
        Returns:
            Opaque session token
            
        Raises:
            ProtocolError: If the exchange failed or the response lacks a session id
            SwarmConnectionError: If the endpoint could not be reached
        """
        try:
            async with self.http.post(
                self.url,
                json={},
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            ) as response:
                if response.status != 200:
                    body = await response.text()
                    raise ProtocolError(
                        f"Session request failed with status {response.status}: {body}"
                    )
                try:
                    data = await response.json(content_type=None)
                except ValueError as e:
                    raise ProtocolError(f"Session response is not JSON: {e}") from e
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            raise SwarmConnectionError(f"Session request to {self.url} failed: {e}") from e
        
        if not isinstance(data, dict) or not data.get(self.SESSION_FIELD):
            raise ProtocolError(f"Session response has no {self.SESSION_FIELD}")
        
        session_id = str(data[self.SESSION_FIELD])
        self.logger.info("Session acquired")
        return session_id
