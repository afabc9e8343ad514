# shiur_recorder/infrastructure/adapters/audio/vad/__init__.py

"""
VAD (Voice Activity Detection) module.

Energy (RMS) threshold detection for unattended session recording:
- Ambient calibration with manual override
- Start hold timer plus an immediate-start bypass for loud onsets
- Three-band quiet countdown (quiet / dead zone / loud)
- Ordered session buffering

Usage:
    from shiur_recorder.infrastructure.adapters.audio.vad import (
        VADStateMachine, VADConfig, Calibrator
    )

    calibrator = Calibrator()
    calibrator.begin(now)
    result = calibrator.feed(rms, now)          # per frame, until not None

    machine = VADStateMachine(VADConfig().with_start_threshold(result.start_threshold))
    machine.arm(now)
    events = machine.process(rms, now)          # per frame
"""

from .vad_state_machine import VADStateMachine
from .models import (
    Frame,
    VADConfig,
    CalibrationResult,
    VADPhase,
    VADEventKind,
    VADEvent
)
from .functionality import FrameSampler, Calibrator, SessionBuffer

__all__ = [
    'VADStateMachine',
    'Frame',
    'VADConfig',
    'CalibrationResult',
    'VADPhase',
    'VADEventKind',
    'VADEvent',
    'FrameSampler',
    'Calibrator',
    'SessionBuffer'
]

__version__ = '1.0.0'
