"""
StreamProgress - Tracks and displays generation stream progress.
"""

import logging
from typing import Optional

from .batch_assembler import BatchResult
from .frame_transcoder import AnimationFrame
from .protocol_events import StatusUpdate
from .stream_stats import StreamStats


class StreamProgress:
    """
    Tracks and displays stream progress with optional per-tick output.
    """
    
    def __init__(
        self,
        show_ticks: bool = False,
        log_interval: int = 25,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize progress tracker.
        
        Args:
            show_ticks: If True, also print empty preview ticks
            log_interval: Log a summary every N messages
            logger: Optional logger instance
        """
        self.show_ticks = show_ticks
        self.log_interval = log_interval
        self.logger = logger or logging.getLogger(__name__)
        self.stats = StreamStats()
    
    def on_message(self) -> None:
        """Called for every logical message received."""
        self.stats.messages += 1
        if self.stats.messages % self.log_interval == 0:
            self.logger.info(
                f"Progress: {self.stats.messages} messages, "
                f"{self.stats.preview_composites} previews, {self.stats.frames} frames "
                f"({self.stats.elapsed_seconds:.1f}s, {self.stats.messages_per_second:.1f} msg/s)"
            )
    
    def on_status(self, status: StatusUpdate) -> None:
        """Called when the backend reports its queue status."""
        self.stats.last_status = status
        self.logger.debug(
            f"Status: {status.live_gens} live, {status.waiting_gens} waiting, "
            f"{status.loading_models} loading models, {status.waiting_backends} waiting backends"
        )
    
    def on_result(self, result: BatchResult) -> None:
        """Called for every standard generation result."""
        if result.error is not None:
            self._on_error(result.error)
        elif result.is_final:
            self.stats.finals += 1
            print(f"  [FINAL] {self._describe(result.image)}")
        else:
            self.stats.preview_ticks += 1
            if result.has_image:
                self.stats.preview_composites += 1
                print(f"  [PREVIEW] {self._describe(result.image)} (ETA {result.eta})")
            elif self.show_ticks:
                print(f"  [TICK] waiting for next preview (ETA {result.eta})")
    
    def on_frame(self, frame: AnimationFrame) -> None:
        """Called for every animation frame."""
        if frame.error is not None:
            self._on_error(frame.error)
            return
        self.stats.frames += 1
        label = 'FINAL' if frame.is_final else 'FRAME'
        print(f"  [{label}] {frame.extension} {self._format_bytes(len(frame.data))} (ETA {frame.eta})")
    
    def on_frame_dropped(self, error: Exception) -> None:
        """Called when a frame could not be transcoded."""
        self.stats.frames_dropped += 1
        self.stats.error_details.append(str(error))
        print(f"  [DROPPED] {error}")
    
    def _on_error(self, message: str) -> None:
        self.stats.error_details.append(message)
        print(f"  [ERROR] {message}")
    
    @staticmethod
    def _describe(image) -> str:
        size = getattr(image, 'size', None)
        if size:
            return f"{size[0]}x{size[1]} composite"
        return "composite"
    
    @staticmethod
    def _format_bytes(bytes_val: Optional[int]) -> str:
        """Format bytes as human-readable string."""
        if bytes_val is None:
            return "unknown"
        for unit in ['B', 'KB', 'MB', 'GB']:
            if bytes_val < 1024:
                return f"{bytes_val:.1f} {unit}"
            bytes_val /= 1024
        return f"{bytes_val:.1f} TB"
