# shiur_recorder/infrastructure/adapters/audio/__init__.py

"""Audio adapters.

SoundDeviceCapture is imported from its own module so that the VAD core
can be used without PortAudio installed.
"""

from .vad import (
    VADStateMachine,
    VADConfig,
    Calibrator,
    FrameSampler,
    SessionBuffer
)

__all__ = [
    'VADStateMachine',
    'VADConfig',
    'Calibrator',
    'FrameSampler',
    'SessionBuffer'
]
