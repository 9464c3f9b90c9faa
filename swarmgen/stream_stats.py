"""
StreamStats - Statistics for one generation stream.
"""

import time
from dataclasses import dataclass, field
from typing import List, Optional

from .protocol_events import StatusUpdate


@dataclass
class StreamStats:
    """
    Statistics for one generation stream.
    
    Attributes:
        messages: Logical messages received
        preview_ticks: Preview results delivered (empty or not)
        preview_composites: Preview results carrying a composite
        finals: Final results delivered
        frames: Animation frames delivered
        frames_dropped: Animation frames dropped after a transcode failure
        last_status: Most recent backend queue status
        start_time: Start timestamp
        error_details: List of error messages
    """
    messages: int = 0
    preview_ticks: int = 0
    preview_composites: int = 0
    finals: int = 0
    frames: int = 0
    frames_dropped: int = 0
    last_status: Optional[StatusUpdate] = None
    start_time: float = field(default_factory=time.time)
    error_details: List[str] = field(default_factory=list)
    
    @property
    def elapsed_seconds(self) -> float:
        """Elapsed time in seconds."""
        return time.time() - self.start_time
    
    @property
    def messages_per_second(self) -> float:
        """Message rate."""
        if self.elapsed_seconds > 0:
            return self.messages / self.elapsed_seconds
        return 0.0
    
    @property
    def errors(self) -> int:
        return len(self.error_details)
