"""Progress tracking and ETA estimation.

Cross-validations against a remote platform take seconds to minutes
each; a selection search runs hundreds of them. This module reports
progress per phase (one per search iteration or per cross-validation
stage) through logging and an optional callback.
"""

import logging
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Deque, Dict, List, Optional

from .config import ProgressConfig

logger = logging.getLogger(__name__)


@dataclass
class PhaseProgress:
    """Progress state for a single phase.

    Attributes:
        phase_name: Name of the current phase.
        completed: Number of units completed (cross-validations, resources).
        total: Total expected units.
        best_score: Best phi-stdev seen in the phase.
        start_time: Phase start timestamp.
        unit_times: Recent unit durations for ETA calculation.
    """
    phase_name: str
    completed: int = 0
    total: int = 0
    best_score: Optional[float] = None
    start_time: float = field(default_factory=time.time)
    unit_times: Deque[float] = field(default_factory=lambda: deque(maxlen=50))

    def elapsed_seconds(self) -> float:
        return time.time() - self.start_time

    def avg_unit_time(self) -> float:
        if not self.unit_times:
            return 0.0
        return sum(self.unit_times) / len(self.unit_times)

    def eta_seconds(self) -> Optional[float]:
        """Estimate remaining time in seconds."""
        if not self.unit_times or self.total <= 0:
            return None

        remaining = self.total - self.completed
        if remaining <= 0:
            return 0.0

        return remaining * self.avg_unit_time()


def format_duration(seconds: Optional[float]) -> str:
    """Format duration in human-readable form.

    Args:
        seconds: Duration in seconds.

    Returns:
        Formatted string like "2h 15m" or "45s".
    """
    if seconds is None:
        return "unknown"

    if seconds < 0:
        return "N/A"

    if seconds < 60:
        return f"{int(seconds)}s"
    elif seconds < 3600:
        mins = int(seconds / 60)
        secs = int(seconds % 60)
        return f"{mins}m {secs}s"
    else:
        hours = int(seconds / 3600)
        mins = int((seconds % 3600) / 60)
        return f"{hours}h {mins}m"


class ProgressTracker:
    """Tracks and reports progress of cross-validation runs and searches.

    Attributes:
        enable_console: Whether to log progress lines.
        update_freq: Report after every N completed units.
        update_freq_seconds: Report at least every N seconds.
        callback: Optional callback receiving a progress dict.
        verbose: Verbosity level.
    """

    def __init__(
        self,
        enable_console: bool = True,
        update_freq: int = 1,
        update_freq_seconds: float = 30.0,
        callback: Optional[Callable[[Dict[str, Any]], None]] = None,
        verbose: int = 1
    ):
        self.enable_console = enable_console
        self.update_freq = max(1, update_freq)
        self.update_freq_seconds = update_freq_seconds
        self.callback = callback
        self.verbose = verbose

        self._current_phase: Optional[PhaseProgress] = None
        self._last_update_time: float = 0
        self._last_update_count: int = 0
        self._global_start_time: float = time.time()
        self._phase_history: List[Dict[str, Any]] = []

    def start_phase(self, phase_name: str, total: int = 0):
        """Start a new phase, closing the previous one."""
        if self._current_phase is not None:
            self._phase_history.append(self._phase_summary(self._current_phase))

        self._current_phase = PhaseProgress(phase_name=phase_name, total=total)
        self._last_update_time = time.time()
        self._last_update_count = 0

        if self.verbose >= 1 and self.enable_console:
            logger.info(f"[{phase_name}] Starting ({total} expected)")

    def update(
        self,
        completed: int,
        score: Optional[float] = None,
        unit_time: Optional[float] = None,
        extra_info: Optional[Dict[str, Any]] = None
    ):
        """Record progress within the current phase.

        Args:
            completed: Units completed so far in this phase.
            score: Score of the unit just completed, if any.
            unit_time: Duration of the unit just completed.
            extra_info: Additional info passed to the callback.
        """
        phase = self._current_phase
        if phase is None:
            return

        phase.completed = completed
        if score is not None and (phase.best_score is None or score > phase.best_score):
            phase.best_score = score
        if unit_time is not None:
            phase.unit_times.append(unit_time)

        due = (completed - self._last_update_count >= self.update_freq
               or time.time() - self._last_update_time >= self.update_freq_seconds)
        if due:
            self._report(extra_info)

    def _report(self, extra_info: Optional[Dict[str, Any]] = None):
        phase = self._current_phase
        self._last_update_time = time.time()
        self._last_update_count = phase.completed

        info = {
            'phase': phase.phase_name,
            'completed': phase.completed,
            'total': phase.total,
            'best_score': phase.best_score,
            'elapsed_seconds': phase.elapsed_seconds(),
            'eta_seconds': phase.eta_seconds(),
            'global_elapsed': time.time() - self._global_start_time,
        }
        if extra_info:
            info.update(extra_info)

        if self.enable_console and self.verbose >= 2:
            best = "n/a" if phase.best_score is None else f"{phase.best_score:.4f}"
            logger.info(
                f"[{phase.phase_name}] {phase.completed}/{phase.total} | "
                f"best={best} | ETA {format_duration(phase.eta_seconds())}"
            )

        if self.callback is not None:
            try:
                self.callback(info)
            except Exception as e:
                logger.warning(f"Progress callback error: {e}")

    def end_phase(self):
        """End the current phase."""
        phase = self._current_phase
        if phase is None:
            return

        if self.enable_console and self.verbose >= 1:
            best = "n/a" if phase.best_score is None else f"{phase.best_score:.4f}"
            logger.info(f"[{phase.phase_name}] Complete: {phase.completed} done, "
                        f"best={best}, time={format_duration(phase.elapsed_seconds())}")

        self._phase_history.append(self._phase_summary(phase))
        self._current_phase = None

    def finish(self):
        """End tracking and log a summary."""
        self.end_phase()

        if self.enable_console and self.verbose >= 1:
            total_time = time.time() - self._global_start_time
            logger.info(f"Finished {len(self._phase_history)} phases "
                        f"in {format_duration(total_time)}")

    def get_summary(self) -> Dict[str, Any]:
        return {
            'total_time': time.time() - self._global_start_time,
            'phases': self._phase_history.copy(),
            'current_phase': self._current_phase.phase_name if self._current_phase else None
        }

    @staticmethod
    def _phase_summary(phase: PhaseProgress) -> Dict[str, Any]:
        return {
            'phase': phase.phase_name,
            'duration': phase.elapsed_seconds(),
            'completed': phase.completed,
            'best_score': phase.best_score,
        }


class NullProgressTracker(ProgressTracker):
    """A no-op progress tracker for when progress reporting is disabled."""

    def __init__(self):
        super().__init__(enable_console=False, callback=None, verbose=0)

    def start_phase(self, *args, **kwargs):
        pass

    def update(self, *args, **kwargs):
        pass

    def end_phase(self, *args, **kwargs):
        pass

    def finish(self):
        pass


def create_progress_tracker(config: Optional[ProgressConfig] = None) -> ProgressTracker:
    """Build a tracker from a ProgressConfig.

    Returns:
        ProgressTracker instance (or NullProgressTracker if all disabled).
    """
    config = config or ProgressConfig()
    if not config.enable_console_logging and config.progress_callback is None:
        return NullProgressTracker()

    return ProgressTracker(
        enable_console=config.enable_console_logging,
        update_freq=config.update_frequency_evals,
        update_freq_seconds=config.update_frequency_seconds,
        callback=config.progress_callback,
        verbose=config.verbose
    )
