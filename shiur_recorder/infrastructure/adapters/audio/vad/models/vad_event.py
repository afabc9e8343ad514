# shiur_recorder/infrastructure/adapters/audio/vad/models/vad_event.py

"""VAD phase and event models."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class VADPhase(Enum):
    """Detection phases"""
    IDLE = "idle"  # Pre-calibration or recalibrating
    LISTENING = "listening"  # Waiting for speech onset
    STARTING = "starting"  # Above start threshold, hold timer running
    RECORDING = "recording"  # Session active, watching for quiet
    STOPPING = "stopping"  # Session handed off, returning to listening


class VADEventKind(Enum):
    """Discrete records emitted by the recorder core"""
    CALIBRATION_STARTED = "calibration_started"
    CALIBRATED = "calibrated"
    LISTENING = "listening"
    THRESHOLD_CROSSED = "threshold_crossed"
    START_HOLD_RESET = "start_hold_reset"
    SESSION_BEGIN = "session_begin"
    QUIET_STARTED = "quiet_started"
    QUIET_RESET = "quiet_reset"
    SESSION_END = "session_end"
    SESSION_ABORTED = "session_aborted"
    SESSION_SAVED = "session_saved"
    SESSION_DISCARDED = "session_discarded"
    SESSION_REJECTED = "session_rejected"
    EXPORT_COMPLETED = "export_completed"
    EXPORT_FAILED = "export_failed"
    CONFIG_CHANGED = "config_changed"


@dataclass(frozen=True)
class VADEvent:
    """One state transition or decision"""
    kind: VADEventKind
    phase: VADPhase
    timestamp: float
    loudness: Optional[float] = None
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Export for the event log"""
        data = {'phase': self.phase.value, 'at': round(self.timestamp, 3)}
        if self.loudness is not None:
            data['rms'] = round(self.loudness, 3)
        data.update(self.details)
        return data
