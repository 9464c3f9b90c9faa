"""
Pytest fixtures for swarmgen tests.
"""

import base64
import io
import json
from unittest.mock import AsyncMock, MagicMock

import pytest


def make_image_bytes(fmt: str, size=(64, 48), color='red') -> bytes:
    """Encode a solid-color image in the given Pillow format."""
    from PIL import Image
    
    img = Image.new('RGB', size, color=color)
    buffer = io.BytesIO()
    img.save(buffer, format=fmt)
    return buffer.getvalue()


def data_uri(payload: bytes, mime_type: str = 'image/png') -> str:
    """Wrap bytes in a MIME-tagged base64 string."""
    return f"data:{mime_type};base64,{base64.b64encode(payload).decode('ascii')}"


class FakeConnection:
    """Scripted stand-in for ConnectionManager."""
    
    def __init__(self, messages):
        self.messages = list(messages)
        self.sent = []
        self.close_reasons = []
        self.closes = 0
        self.is_open = False
    
    async def ensure_connected(self):
        self.is_open = True
    
    async def send(self, request):
        self.sent.append(request)
    
    async def receive(self):
        if not self.messages:
            await self.close("Closed by backend")
            return None
        item = self.messages.pop(0)
        if isinstance(item, Exception):
            raise item
        if isinstance(item, str):
            return item
        return json.dumps(item)
    
    async def close(self, reason=''):
        self.close_reasons.append(reason)
        if not self.is_open:
            return
        self.is_open = False
        self.closes += 1


@pytest.fixture
def swarm_config():
    """Fixture providing backend configuration."""
    from swarmgen.swarm_config import SwarmConfig
    
    return SwarmConfig(
        base_url='http://swarm.test:7801',
        preview_frequency=2,
        timeout=5.0,
    )


@pytest.fixture
def fake_backend(mocker):
    """Fixture installing a scripted connection and session provider into SwarmClient."""
    def install(messages, token='test-session'):
        connection = FakeConnection(messages)
        mocker.patch('swarmgen.swarm_client.ConnectionManager', return_value=connection)
        provider = MagicMock()
        provider.acquire = AsyncMock(return_value=token)
        mocker.patch('swarmgen.swarm_client.SessionProvider', return_value=provider)
        return connection
    return install


@pytest.fixture
def fake_compose():
    """Fixture providing a compositor that records the slots it was given."""
    return MagicMock(side_effect=lambda slots: ('grid', tuple(sorted(slots))))


@pytest.fixture
def sample_jpeg_bytes():
    """Fixture providing sample JPEG image bytes."""
    return make_image_bytes('JPEG')


@pytest.fixture
def sample_gif_bytes():
    """Fixture providing sample GIF image bytes."""
    return make_image_bytes('GIF', color='blue')


@pytest.fixture
def sample_png_bytes():
    """Fixture providing sample PNG image bytes."""
    return make_image_bytes('PNG', size=(32, 32), color='green')


@pytest.fixture
def sample_webp_bytes():
    """Fixture providing a two-frame animated WebP."""
    from PIL import Image
    
    frames = [Image.new('RGB', (20, 10), color=c) for c in ('red', 'blue')]
    buffer = io.BytesIO()
    frames[0].save(buffer, format='WEBP', save_all=True, append_images=frames[1:], duration=80, loop=0)
    return buffer.getvalue()


@pytest.fixture
def logger():
    """Fixture providing a logger."""
    import logging
    return logging.getLogger('test')
