"""
ProgressEstimator - Estimated time remaining from percent-complete reports.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional


MAX_TOTAL_SECONDS = 24 * 60 * 60


def format_eta(seconds: Optional[float]) -> str:
    """Format a duration as hh:mm:ss ('00:00:00' when unknown)."""
    total = int(seconds) if seconds and seconds > 0 else 0
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


@dataclass
class EtaState:
    """
    Call-scoped estimation state.
    
    Attributes:
        start_time: Clock reading when the current progress phase began
        last_percent: Highest current_percent seen in this phase
        total_estimate: Last estimate of the phase's total duration (seconds)
        estimated_remaining: Last estimate of the time remaining (seconds)
    """
    start_time: float
    last_percent: float = 0.0
    total_estimate: Optional[float] = None
    estimated_remaining: Optional[float] = None


class ProgressEstimator:
    """
    Derives an ETA from a noisy, mostly increasing percent signal.
    
    A current_percent of 0 starts a new phase. The estimate is only
    recomputed when the percent moves forward; repeats and regressions
    keep the previous estimate.
    """
    
    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize estimator.
        
        Args:
            clock: Monotonic clock returning seconds
            logger: Optional logger instance
        """
        self.clock = clock
        self.logger = logger or logging.getLogger(__name__)
        self.state = EtaState(start_time=clock())
    
    def update(self, current_percent: float, overall_percent: Optional[float] = None) -> Optional[float]:
        """
        Feed one progress report.
        
        Args:
            current_percent: Progress of the current phase (0-1)
            overall_percent: Progress of the whole request (0-1), informational
            
        Returns:
            The newly computed seconds remaining, or None when this report
            did not produce a new estimate
        """
        now = self.clock()
        
        if current_percent <= 0:
            self.state.start_time = now
            self.state.last_percent = 0.0
            return None
        
        current_percent = min(current_percent, 1.0)
        if current_percent <= self.state.last_percent:
            return None
        
        elapsed = now - self.state.start_time
        total = min(elapsed / current_percent, MAX_TOTAL_SECONDS)
        remaining = total * (1 - current_percent)
        
        self.state.total_estimate = total
        self.state.estimated_remaining = remaining
        self.state.last_percent = current_percent
        
        self.logger.debug(
            f"Progress {current_percent:.0%} (overall {overall_percent or 0:.0%}), "
            f"~{format_eta(remaining)} remaining"
        )
        return remaining
    
    @property
    def estimated_remaining(self) -> Optional[float]:
        return self.state.estimated_remaining
    
    @property
    def eta_text(self) -> str:
        """Current estimate formatted as hh:mm:ss."""
        return format_eta(self.state.estimated_remaining)
