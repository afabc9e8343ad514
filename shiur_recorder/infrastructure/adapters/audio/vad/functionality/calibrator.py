# shiur_recorder/infrastructure/adapters/audio/vad/functionality/calibrator.py

"""Ambient noise calibration."""

from typing import List, Optional

import numpy as np
import structlog

from ..models import CalibrationResult

logger = structlog.get_logger()

DEFAULT_CALIBRATION_MS = 5000
DEFAULT_MULTIPLIER = 2.5


class Calibrator:
    """
    Averages frame loudness over a fixed window and derives thresholds.

    start = manual override, else average * multiplier
    double = start * 2
    """

    def __init__(
            self,
            multiplier: float = DEFAULT_MULTIPLIER,
            manual_override: Optional[float] = None
    ):
        """
        Args:
            multiplier: Factor applied to the ambient average
            manual_override: Fixed start threshold (None = use calibration)
        """
        self.multiplier = multiplier
        self.manual_override = manual_override

        self._levels: List[float] = []
        self._started_at: Optional[float] = None
        self._duration_s = DEFAULT_CALIBRATION_MS / 1000
        self.last_result: Optional[CalibrationResult] = None

    @property
    def is_running(self) -> bool:
        return self._started_at is not None

    @property
    def collected(self) -> int:
        """Samples collected by the run in progress"""
        return len(self._levels)

    def begin(self, now: float, duration_ms: int = DEFAULT_CALIBRATION_MS) -> None:
        """Start (or restart) a run; an in-flight run is discarded."""
        if self.is_running:
            logger.info("calibration_restarted", discarded_samples=len(self._levels))

        self._levels = []
        self._started_at = now
        self._duration_s = duration_ms / 1000
        logger.info("calibration_started", duration_ms=duration_ms)

    def feed(self, loudness: float, now: float) -> Optional[CalibrationResult]:
        """
        Collect one loudness value.

        Returns:
            CalibrationResult once the window has elapsed, otherwise None
        """
        if not self.is_running:
            return None

        self._levels.append(loudness)

        if now - self._started_at < self._duration_s:
            return None

        average = float(np.mean(self._levels)) if self._levels else 0.0
        result = self.result_for(average, sample_count=len(self._levels))

        self._levels = []
        self._started_at = None
        self.last_result = result

        logger.info("calibration_complete", **result.to_dict())
        return result

    def result_for(self, average: float, sample_count: int = 0) -> CalibrationResult:
        """Thresholds for an ambient average under the current override."""
        if self.manual_override is not None:
            start = float(self.manual_override)
        else:
            start = average * self.multiplier

        return CalibrationResult(
            average_level=average,
            start_threshold=start,
            double_threshold=start * 2,
            sample_count=sample_count,
            manual_override=self.manual_override is not None
        )

    def set_manual_override(self, threshold: float) -> Optional[CalibrationResult]:
        """
        Fix the start threshold.

        Returns:
            Recomputed result when a calibration has already completed
        """
        if threshold < 0:
            raise ValueError("threshold must be >= 0")

        self.manual_override = float(threshold)
        logger.info("manual_calibration_set", start_threshold=threshold,
                    double_threshold=threshold * 2)
        return self._recompute()

    def clear_manual_override(self) -> Optional[CalibrationResult]:
        """Go back to the calibrated threshold."""
        self.manual_override = None
        logger.info("manual_calibration_cleared")
        return self._recompute()

    def _recompute(self) -> Optional[CalibrationResult]:
        if self.last_result is None:
            return None
        self.last_result = self.result_for(
            self.last_result.average_level,
            sample_count=self.last_result.sample_count
        )
        return self.last_result
