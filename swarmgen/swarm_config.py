"""
SwarmConfig - Backend connection settings.
"""

import os
from dataclasses import dataclass
from typing import List, Optional


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


@dataclass
class SwarmConfig:
    """
    Settings for talking to a generation backend.
    
    Attributes:
        base_url: Base HTTP(S) URL of the backend (e.g. 'http://localhost:7801')
        preview_frequency: Emit a preview composite every N completed preview sets
        strict_batches: Require all four slots before a set counts as complete
        timeout: Seconds allowed for the session request and the connect handshake
        max_message_size: Largest logical message the transport will assemble
    """
    base_url: Optional[str] = None
    preview_frequency: int = 2
    strict_batches: bool = False
    timeout: float = 30.0
    max_message_size: int = 64 * 1024 * 1024
    
    SESSION_PATH = '/API/GetNewSession'
    GENERATION_PATH = '/API/GenerateText2ImageWS'
    
    @classmethod
    def from_env(cls) -> 'SwarmConfig':
        """Build configuration from SWARM_* environment variables."""
        return cls(
            base_url=os.getenv('SWARM_URL'),
            preview_frequency=int(os.getenv('SWARM_PREVIEW_FREQUENCY', '2')),
            strict_batches=_env_bool('SWARM_STRICT_BATCHES', False),
            timeout=float(os.getenv('SWARM_TIMEOUT', '30')),
            max_message_size=int(os.getenv('SWARM_MAX_MESSAGE_SIZE', str(64 * 1024 * 1024))),
        )
    
    @property
    def session_url(self) -> str:
        """URL of the session endpoint."""
        return f"{self._base()}{self.SESSION_PATH}"
    
    @property
    def generation_url(self) -> str:
        """Websocket URL of the generation endpoint."""
        base = self._base()
        if base.startswith('https://'):
            base = 'wss://' + base[len('https://'):]
        elif base.startswith('http://'):
            base = 'ws://' + base[len('http://'):]
        return f"{base}{self.GENERATION_PATH}"
    
    def _base(self) -> str:
        return (self.base_url or '').rstrip('/')
    
    def validate(self) -> List[str]:
        """
        Check the configuration.
        
        Returns:
            List of problems, empty when the configuration is usable
        """
        errors = []
        if not self.base_url:
            errors.append("SWARM_URL is not set")
        elif not self.base_url.startswith(('http://', 'https://')):
            errors.append(f"SWARM_URL must start with http:// or https:// (got {self.base_url})")
        if self.preview_frequency < 1:
            errors.append(f"Preview frequency must be at least 1 (got {self.preview_frequency})")
        if self.timeout <= 0:
            errors.append(f"Timeout must be positive (got {self.timeout})")
        if self.max_message_size <= 0:
            errors.append(f"Max message size must be positive (got {self.max_message_size})")
        return errors
