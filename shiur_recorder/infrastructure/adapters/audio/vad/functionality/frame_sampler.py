# shiur_recorder/infrastructure/adapters/audio/vad/functionality/frame_sampler.py

"""Per-frame loudness (RMS) on the 8-bit analyser scale."""

from typing import Tuple, Union

import numpy as np
import structlog

from ..models import Frame

logger = structlog.get_logger()

# Full scale of the unsigned 8-bit analyser the thresholds were tuned on
ANALYSER_FULL_SCALE = 128.0


def _center_and_scale(dtype: np.dtype) -> Tuple[float, float]:
    """
    Midpoint of the dtype's representable range and the factor mapping
    a deviation from it onto the analyser scale.
    """
    if dtype.kind == 'f':
        return 0.0, ANALYSER_FULL_SCALE

    half_range = float(2 ** (dtype.itemsize * 8 - 1))
    if dtype.kind == 'u':
        return half_range, ANALYSER_FULL_SCALE / half_range
    if dtype.kind == 'i':
        return 0.0, ANALYSER_FULL_SCALE / half_range

    raise TypeError(f"unsupported sample dtype: {dtype}")


class FrameSampler:
    """
    Turns device blocks into Frames and measures their loudness.

    RMS is taken relative to the centre of the sample's range, so unsigned
    8-bit input (centre 128), signed int16 and float [-1, 1] all land on
    the same 0-128 scale.
    """

    def __init__(self, log_every_n_frames: int = 20):
        """
        Args:
            log_every_n_frames: Emit an "rms_update" debug log every N frames (0 = never)
        """
        self.log_every_n_frames = log_every_n_frames
        self.frame_count = 0

    def make_frame(self, block: np.ndarray, timestamp: float) -> Frame:
        """Flatten a device block (first channel) into a Frame."""
        samples = np.asarray(block)
        if samples.ndim > 1:
            samples = samples[:, 0]
        return Frame(samples=samples.copy(), timestamp=timestamp)

    def loudness(self, frame: Union[Frame, np.ndarray]) -> float:
        """
        RMS of the frame: sqrt(mean((sample - center)^2)).
        Empty or malformed frames yield 0.
        """
        samples = frame.samples if isinstance(frame, Frame) else np.asarray(frame)

        if samples.size == 0:
            return 0.0

        try:
            center, scale = _center_and_scale(samples.dtype)
        except TypeError as e:
            logger.debug("loudness_unsupported_frame", error=str(e))
            return 0.0

        deviation = (samples.astype(np.float64) - center) * scale
        rms = float(np.sqrt(np.mean(deviation ** 2)))

        if not np.isfinite(rms):
            return 0.0
        return rms

    def measure(self, frame: Frame) -> float:
        """Loudness plus the periodic sampling log."""
        rms = self.loudness(frame)
        self.frame_count += 1

        if self.log_every_n_frames and self.frame_count % self.log_every_n_frames == 0:
            logger.debug("rms_update", rms=round(rms, 3), frame=self.frame_count)

        return rms

    def reset_counter(self) -> None:
        self.frame_count = 0
