# shiur_recorder/infrastructure/adapters/audio/vad/models/vad_config.py

"""VAD thresholds and timing."""

from dataclasses import dataclass, replace
from typing import Optional


@dataclass(frozen=True)
class VADConfig:
    """
    Thresholds and timings used by the VAD state machine.

    Frozen: edits build a new instance that the state machine swaps in
    between frames, so a change never lands in the middle of an evaluation.
    Loudness values are on the 8-bit analyser scale (see FrameSampler).
    """

    # ========================================
    # Thresholds
    # ========================================
    start_threshold: float = 0.0
    stop_threshold: float = 4.0  # "quiet RMS"
    double_threshold: float = 0.0

    # ========================================
    # Timing
    # ========================================
    start_hold_seconds: float = 0.25
    quiet_timeout_seconds: int = 20

    # ========================================
    # Policy constants (empirical)
    # ========================================
    immediate_start_threshold: float = 12.0
    min_session_seconds: float = 11.0

    # ========================================
    # Derived copies
    # ========================================

    def with_start_threshold(self, start_threshold: float) -> "VADConfig":
        """Start threshold and its double, kept in the 1:2 ratio."""
        return replace(
            self,
            start_threshold=start_threshold,
            double_threshold=start_threshold * 2
        )

    def with_stop_threshold(self, stop_threshold: float) -> "VADConfig":
        return replace(self, stop_threshold=stop_threshold)

    def with_start_hold(self, seconds: float) -> "VADConfig":
        return replace(self, start_hold_seconds=seconds)

    def validate(self) -> None:
        """Validate configuration."""
        if self.start_threshold < 0:
            raise ValueError("start_threshold must be >= 0")

        if self.stop_threshold < 0:
            raise ValueError("stop_threshold must be >= 0")

        if self.start_hold_seconds < 0:
            raise ValueError("start_hold_seconds must be >= 0")

        if self.quiet_timeout_seconds < 1:
            raise ValueError("quiet_timeout_seconds must be >= 1")

        if self.min_session_seconds < 0:
            raise ValueError("min_session_seconds must be >= 0")

    def to_dict(self) -> dict:
        """Export config as dictionary."""
        return {
            'start_threshold': round(self.start_threshold, 3),
            'stop_threshold': round(self.stop_threshold, 3),
            'double_threshold': round(self.double_threshold, 3),
            'start_hold_seconds': self.start_hold_seconds,
            'quiet_timeout_seconds': self.quiet_timeout_seconds,
            'immediate_start_threshold': self.immediate_start_threshold,
            'min_session_seconds': self.min_session_seconds
        }

    @classmethod
    def from_settings(cls, settings, start_threshold: Optional[float] = None) -> "VADConfig":
        """Build from RecorderSettings (thresholds come from calibration later)."""
        config = cls(
            stop_threshold=settings.get('vad.quiet_rms', 4.0),
            start_hold_seconds=settings.get('vad.start_hold_seconds', 0.25),
            quiet_timeout_seconds=settings.get('vad.quiet_timeout_seconds', 20),
            immediate_start_threshold=settings.get('vad.immediate_start_threshold', 12.0),
            min_session_seconds=settings.get('vad.min_session_seconds', 11.0)
        )
        if start_threshold is not None:
            config = config.with_start_threshold(start_threshold)
        config.validate()
        return config
