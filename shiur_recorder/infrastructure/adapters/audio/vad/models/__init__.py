# shiur_recorder/infrastructure/adapters/audio/vad/models/__init__.py

"""VAD models - data classes for frames, configuration, calibration and events."""

from .frame import Frame
from .vad_config import VADConfig
from .calibration_result import CalibrationResult
from .vad_event import VADPhase, VADEventKind, VADEvent

__all__ = [
    'Frame',
    'VADConfig',
    'CalibrationResult',
    'VADPhase',
    'VADEventKind',
    'VADEvent'
]
