"""
Streaming client for a generative-image backend.

One request becomes an incremental sequence of results over a websocket:
    - Standard generation: throttled 2x2 preview composites, then one final composite
    - Animation: individual frames, sniffed and transcoded for delivery, with an ETA
"""

__version__ = "1.0.0"

from .errors import (
    SwarmError,
    SwarmConnectionError,
    ProtocolError,
    BackendError,
    TranscodeError,
)
from .swarm_config import SwarmConfig
from .protocol_events import (
    PreviewFrame,
    FinalFrame,
    ProgressUpdate,
    StatusUpdate,
    ErrorEvent,
)
from .session_provider import SessionProvider
from .connection import ConnectionManager, ConnectionState
from .request_builder import RequestBuilder
from .frame_parser import FrameParser
from .batch_assembler import BatchAssembler, BatchResult, SlotSet
from .progress_estimator import ProgressEstimator, EtaState
from .frame_transcoder import FrameTranscoder, FrameFormat, TranscodedFrame, AnimationFrame, sniff_format
from .grid_compositor import compose_grid
from .stream_stats import StreamStats
from .stream_progress import StreamProgress
from .swarm_client import SwarmClient

__all__ = [
    "SwarmError",
    "SwarmConnectionError",
    "ProtocolError",
    "BackendError",
    "TranscodeError",
    "SwarmConfig",
    "PreviewFrame",
    "FinalFrame",
    "ProgressUpdate",
    "StatusUpdate",
    "ErrorEvent",
    "SessionProvider",
    "ConnectionManager",
    "ConnectionState",
    "RequestBuilder",
    "FrameParser",
    "BatchAssembler",
    "BatchResult",
    "SlotSet",
    "ProgressEstimator",
    "EtaState",
    "FrameTranscoder",
    "FrameFormat",
    "TranscodedFrame",
    "AnimationFrame",
    "sniff_format",
    "compose_grid",
    "StreamStats",
    "StreamProgress",
    "SwarmClient",
]
