"""
BatchAssembler - Collects per-slot frames into composite results.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional

from .errors import BackendError, ProtocolError
from .protocol_events import FinalFrame, PreviewFrame


SLOT_COUNT = 4
LAST_SLOT = SLOT_COUNT - 1

ComposeGrid = Callable[[Mapping[int, bytes]], Any]


class SlotSet:
    """Frame payloads keyed by batch index, for one call."""
    
    def __init__(self):
        self._slots: Dict[int, bytes] = {}
    
    def put(self, index: int, payload: bytes) -> bool:
        """
        Store a payload.
        
        Args:
            index: Batch index (0-3)
            payload: Frame bytes
            
        Returns:
            True if this write filled the last empty slot
        """
        if not 0 <= index < SLOT_COUNT:
            raise ProtocolError(f"Batch index {index} outside 0-{LAST_SLOT}")
        was_complete = self.is_complete
        self._slots[index] = payload
        return not was_complete and self.is_complete
    
    @property
    def is_complete(self) -> bool:
        return len(self._slots) == SLOT_COUNT
    
    def as_dict(self) -> Dict[int, bytes]:
        return dict(self._slots)
    
    def __len__(self) -> int:
        return len(self._slots)
    
    def __contains__(self, index: int) -> bool:
        return index in self._slots


@dataclass
class BatchResult:
    """
    One element of the standard generation sequence.
    
    Attributes:
        image: Composite image, or None for a "not yet" tick
        is_final: True for the completed batch
        eta: Estimated time remaining as hh:mm:ss
        error: Backend error message when the generation failed
    """
    image: Optional[Any]
    is_final: bool
    eta: str = '00:00:00'
    error: Optional[str] = None
    
    @property
    def has_image(self) -> bool:
        return self.image is not None
    
    def raise_for_error(self) -> None:
        """Raise BackendError if this result reports a backend failure."""
        if self.error is not None:
            raise BackendError(self.error)


class AssemblerState(Enum):
    COLLECTING = 'collecting'
    DONE = 'done'


class BatchAssembler:
    """
    Per-call state machine turning slot frames into composites.
    
    Previews: every frame yields a result. A frame that completes a set
    advances the preview tick counter, and every `preview_frequency`-th
    tick carries a composite; all other results are empty ticks.
    
    Finals: the frame that completes the set produces the single final
    composite, after which the assembler is done.
    
    Completion: by default writing index 3 completes a set whether or not
    slots 0-2 arrived. With `strict=True` a set completes only once all
    four slots are present, checked when index 3 is written or when a
    write fills the last empty slot.
    """
    
    def __init__(
        self,
        compose_grid: ComposeGrid,
        preview_frequency: int = 2,
        strict: bool = False,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize assembler.
        
        Args:
            compose_grid: Callable turning {index: bytes} into one image
            preview_frequency: Emit a preview composite every N completed sets
            strict: Require all four slots for completion
            logger: Optional logger instance
        """
        if preview_frequency < 1:
            raise ValueError(f"preview_frequency must be at least 1 (got {preview_frequency})")
        self.compose_grid = compose_grid
        self.preview_frequency = preview_frequency
        self.strict = strict
        self.logger = logger or logging.getLogger(__name__)
        self.preview_slots = SlotSet()
        self.final_slots = SlotSet()
        self.preview_ticks = 0
        self.state = AssemblerState.COLLECTING
    
    @property
    def done(self) -> bool:
        return self.state == AssemblerState.DONE
    
    def add_preview(self, frame: PreviewFrame) -> BatchResult:
        """Store a preview frame and return the tick it produces."""
        self._check_collecting()
        filled = self.preview_slots.put(frame.batch_index, frame.payload)
        
        if not self._completes(self.preview_slots, frame.batch_index, filled):
            return BatchResult(image=None, is_final=False)
        
        self.preview_ticks += 1
        if self.preview_ticks % self.preview_frequency != 0:
            return BatchResult(image=None, is_final=False)
        
        self.logger.debug(f"Composing preview (tick {self.preview_ticks}, {len(self.preview_slots)} slots)")
        return BatchResult(image=self.compose_grid(self.preview_slots.as_dict()), is_final=False)
    
    def add_final(self, frame: FinalFrame) -> Optional[BatchResult]:
        """
        Store a final frame.
        
        Returns:
            The final result when this frame completes the batch, else None
        """
        self._check_collecting()
        filled = self.final_slots.put(frame.batch_index, frame.payload)
        
        if not self._completes(self.final_slots, frame.batch_index, filled):
            return None
        
        self.logger.debug(f"Composing final ({len(self.final_slots)} slots)")
        image = self.compose_grid(self.final_slots.as_dict())
        self.state = AssemblerState.DONE
        return BatchResult(image=image, is_final=True)
    
    def _completes(self, slots: SlotSet, index: int, filled: bool) -> bool:
        if not self.strict:
            return index == LAST_SLOT
        return (index == LAST_SLOT or filled) and slots.is_complete
    
    def _check_collecting(self) -> None:
        if self.done:
            raise ProtocolError("Frame received after the final batch was assembled")
