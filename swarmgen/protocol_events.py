"""
Protocol events decoded from backend messages.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Union


@dataclass
class PreviewFrame:
    """
    Low-fidelity render of one slot, streamed mid-generation.
    
    Attributes:
        batch_index: Slot the preview belongs to (0-3)
        payload: Decoded image bytes
        mime_type: MIME type from the data URI prefix, if any
        overall_percent: Progress of the whole request (0-1), if reported
        current_percent: Progress of the current step (0-1), if reported
    """
    batch_index: int
    payload: bytes
    mime_type: Optional[str] = None
    overall_percent: Optional[float] = None
    current_percent: Optional[float] = None


@dataclass
class FinalFrame:
    """
    Completed image for one slot.
    
    Attributes:
        batch_index: Slot the image belongs to (0-3)
        payload: Decoded image bytes
        mime_type: MIME type from the data URI prefix, if any
    """
    batch_index: int
    payload: bytes
    mime_type: Optional[str] = None


@dataclass
class ProgressUpdate:
    """Bare progress report without image data."""
    overall_percent: float
    current_percent: float


@dataclass
class StatusUpdate:
    """Backend queue status."""
    waiting_gens: int = 0
    loading_models: int = 0
    waiting_backends: int = 0
    live_gens: int = 0
    fields: Dict[str, object] = field(default_factory=dict)


@dataclass
class ErrorEvent:
    """Explicit error reported by the backend."""
    message: str


ProtocolEvent = Union[PreviewFrame, FinalFrame, ProgressUpdate, StatusUpdate, ErrorEvent]
