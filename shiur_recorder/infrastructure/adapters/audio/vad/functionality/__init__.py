# shiur_recorder/infrastructure/adapters/audio/vad/functionality/__init__.py

"""VAD functionality modules - loudness, calibration and session buffering."""

from .frame_sampler import FrameSampler
from .calibrator import Calibrator
from .session_buffer import SessionBuffer

__all__ = [
    'FrameSampler',
    'Calibrator',
    'SessionBuffer'
]
