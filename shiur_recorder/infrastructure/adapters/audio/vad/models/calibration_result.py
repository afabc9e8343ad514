# shiur_recorder/infrastructure/adapters/audio/vad/models/calibration_result.py

"""Calibration result model."""

from dataclasses import dataclass


@dataclass(frozen=True)
class CalibrationResult:
    """
    Outcome of one calibration run.
    Replaced wholesale on recalibration, never mutated.
    """

    average_level: float
    start_threshold: float
    double_threshold: float
    sample_count: int = 0
    manual_override: bool = False

    def to_dict(self) -> dict:
        """Export for logging."""
        return {
            'average_level': round(self.average_level, 3),
            'start_threshold': round(self.start_threshold, 3),
            'double_threshold': round(self.double_threshold, 3),
            'sample_count': self.sample_count,
            'manual_override': self.manual_override
        }
