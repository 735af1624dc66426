"""
Scripted progress simulation for the analysis pipeline.

No work happens underneath: a fixed sequence of steps is replayed with delays
so that clients can show an upload / detection / report-generation progress bar.
Once started a sequence always runs to completion.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Tuple

from ..config import settings

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, str], None]


@dataclass(frozen=True)
class ProgressStep:
    progress: int  # percent complete after this step
    message: str
    delay_seconds: float


PANEL_ANALYSIS_STEPS: Tuple[ProgressStep, ...] = (
    ProgressStep(10, "Uploading images...", 0.5),
    ProgressStep(25, "Building orthomosaic...", 1.5),
    ProgressStep(40, "Detecting panels...", 1.2),
    ProgressStep(55, "Running AI analysis...", 1.8),
    ProgressStep(70, "Detecting hotspots...", 1.0),
    ProgressStep(85, "Classifying anomalies...", 0.8),
    ProgressStep(95, "Generating report...", 0.6),
    ProgressStep(100, "Analysis complete!", 0.3),
)

MEGA_SOLAR_ANALYSIS_STEPS: Tuple[ProgressStep, ...] = (
    ProgressStep(5, "Loading image data...", 0.5),
    ProgressStep(15, "Resolving GPS coordinates...", 0.8),
    ProgressStep(25, "Processing thermal images...", 1.2),
    ProgressStep(35, "Identifying blocks...", 1.0),
    ProgressStep(45, "Initializing AI model...", 0.8),
    ProgressStep(55, "Detecting hotspots...", 1.5),
    ProgressStep(65, "Analyzing temperature anomalies...", 1.2),
    ProgressStep(75, "Locating anomalies per panel...", 1.0),
    ProgressStep(85, "Calculating power loss...", 0.8),
    ProgressStep(95, "Generating report...", 0.6),
    ProgressStep(100, "Analysis complete!", 0.3),
)


class ProgressSimulator:
    """
    Replays a scripted step sequence through a progress callback.
    """

    def __init__(
        self,
        steps: Sequence[ProgressStep] = PANEL_ANALYSIS_STEPS,
        time_scale: float = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """
        Initialize the progress simulator.

        Args:
            steps: Steps to replay, in order
            time_scale: Multiplier applied to every step delay (0 disables waiting)
            sleep: Sleep function used between steps
        """
        if not steps:
            raise ValueError("At least one progress step is required")
        if any(later.progress < earlier.progress for earlier, later in zip(steps, steps[1:])):
            raise ValueError("Progress steps must not go backwards")

        self.steps = tuple(steps)
        self.time_scale = settings.progress_time_scale if time_scale is None else time_scale
        if self.time_scale < 0:
            raise ValueError("Time scale cannot be negative")
        self._sleep = sleep

    @property
    def total_duration(self) -> float:
        """Total scripted delay in seconds after scaling."""
        return sum(step.delay_seconds for step in self.steps) * self.time_scale

    def run(self, on_progress: ProgressCallback) -> None:
        """
        Replay all steps synchronously.

        Args:
            on_progress: Called with (percent, message) after each step's delay
        """
        logger.info(f"Starting simulated analysis ({len(self.steps)} steps)")

        for step in self.steps:
            delay = step.delay_seconds * self.time_scale
            if delay > 0:
                self._sleep(delay)
            on_progress(step.progress, step.message)

        logger.info("Simulated analysis finished")

    def run_in_background(
        self,
        on_progress: ProgressCallback,
        on_complete: Optional[Callable[[], None]] = None,
    ) -> threading.Thread:
        """
        Replay all steps on a daemon thread.

        Args:
            on_progress: Called with (percent, message) after each step
            on_complete: Optional callback invoked once the final step is reported

        Returns:
            The started thread
        """
        def _worker() -> None:
            try:
                self.run(on_progress)
                if on_complete:
                    on_complete()
            except Exception as e:
                logger.error(f"Error in progress simulation: {e}", exc_info=True)

        thread = threading.Thread(target=_worker, name="analysis-progress", daemon=True)
        thread.start()
        return thread
