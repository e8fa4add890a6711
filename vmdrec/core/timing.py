"""Fixed-step frame timing for the sampling loop"""

import time
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Optional


@dataclass
class FrameData:
    """Container for frame timing information."""
    frame_number: int
    timestamp: float  # Seconds since start
    capture_time: float  # System time when ticked


class FrameTimer:
    """Measures and tracks per-tick processing times."""

    def __init__(self, window_size: int = 60):
        self._window_size = window_size
        self._frame_times: Deque[float] = deque(maxlen=window_size)
        self._start_time: Optional[float] = None

    def start(self) -> None:
        """Start timing a tick."""
        self._start_time = time.perf_counter()

    def stop(self) -> float:
        """Stop timing and return elapsed time."""
        if self._start_time is None:
            return 0.0

        elapsed = time.perf_counter() - self._start_time
        self._frame_times.append(elapsed)
        self._start_time = None
        return elapsed

    @property
    def average_frame_time(self) -> float:
        """Average tick processing time over window."""
        if not self._frame_times:
            return 0.0
        return sum(self._frame_times) / len(self._frame_times)

    @property
    def max_frame_time(self) -> float:
        """Maximum tick time in window."""
        return max(self._frame_times) if self._frame_times else 0.0


@dataclass
class FrameClock:
    """
    Fixed-step clock driving sampling and recording.

    Timestamps are always frame_number / target_fps so that recorded
    frame indices stay contiguous no matter how long a tick really took.
    With realtime=False, wait_for_next_frame() never sleeps (offline
    processing of a clip).
    """
    target_fps: float = 30.0
    realtime: bool = True
    _frame_count: int = field(default=0, init=False)
    _last_frame_time: float = field(default=0.0, init=False)

    def start(self) -> None:
        """Start the frame clock."""
        self._last_frame_time = time.perf_counter()
        self._frame_count = 0

    def tick(self) -> FrameData:
        """
        Advance to next frame and return frame data.

        Returns:
            FrameData with timing information
        """
        current_time = time.perf_counter()
        frame_data = FrameData(
            frame_number=self._frame_count,
            timestamp=self._frame_count * self.target_frame_duration,
            capture_time=current_time
        )

        self._last_frame_time = current_time
        self._frame_count += 1

        return frame_data

    @property
    def frame_count(self) -> int:
        return self._frame_count

    @property
    def target_frame_duration(self) -> float:
        """Target duration per frame in seconds."""
        return 1.0 / self.target_fps

    def wait_for_next_frame(self) -> float:
        """
        Wait until it's time for the next frame.

        Returns:
            Actual time waited in seconds
        """
        if not self.realtime:
            return 0.0

        elapsed_since_last = time.perf_counter() - self._last_frame_time
        wait_time = self.target_frame_duration - elapsed_since_last

        if wait_time > 0:
            time.sleep(wait_time)
            return wait_time

        return 0.0
