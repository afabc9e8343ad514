"""
WAV encoder - 44-byte RIFF header + little-endian 16-bit mono PCM
"""

import io
import wave

import numpy as np
import structlog

from shiur_recorder.core.exceptions import EncoderError
from shiur_recorder.core.ports.i_audio_encoder import IAudioEncoder

logger = structlog.get_logger()


def to_pcm16(samples: np.ndarray) -> np.ndarray:
    """
    Convert device samples to little-endian int16.

    float: clipped to [-1, 1], negative side scaled by 0x8000, positive by 0x7FFF
    uint8: re-centred on 128 and shifted up 8 bits
    other ints: rescaled to 16 bits
    """
    samples = np.asarray(samples).reshape(-1)

    if samples.dtype.kind == 'f':
        clipped = np.clip(samples.astype(np.float64), -1.0, 1.0)
        scaled = np.where(clipped < 0, clipped * 0x8000, clipped * 0x7FFF)
        pcm = scaled.astype(np.int16)
    elif samples.dtype == np.uint8:
        pcm = ((samples.astype(np.int16) - 128) << 8).astype(np.int16)
    elif samples.dtype == np.int16:
        pcm = samples
    elif samples.dtype.kind in ('i', 'u'):
        bits = samples.dtype.itemsize * 8
        if samples.dtype.kind == 'u':
            centred = samples.astype(np.int64) - (1 << (bits - 1))
        else:
            centred = samples.astype(np.int64)
        shift = bits - 16
        pcm = (centred >> shift if shift > 0 else centred << -shift).astype(np.int16)
    else:
        raise EncoderError(f"Unsupported sample dtype: {samples.dtype}")

    return pcm.astype('<i2', copy=False)


def to_wav_bytes(pcm16: np.ndarray, sample_rate: int) -> bytes:
    """Wrap int16 PCM in a mono WAV container"""
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(1)
        wf.setsampwidth(2)  # 16-bit
        wf.setframerate(int(sample_rate))
        wf.writeframes(pcm16.tobytes())
    return buf.getvalue()


class WavEncoder(IAudioEncoder):
    """Pure encoder: same samples and rate always give the same bytes"""

    extension = "wav"

    def encode(self, samples: np.ndarray, sample_rate: int) -> bytes:
        if sample_rate <= 0:
            raise EncoderError(f"Invalid sample rate: {sample_rate}")

        pcm = to_pcm16(samples)
        try:
            data = to_wav_bytes(pcm, sample_rate)
        except (wave.Error, OverflowError, ValueError) as e:
            raise EncoderError(f"WAV encoding failed: {e}") from e

        logger.debug("wav_encoded", samples=len(pcm), sample_rate=sample_rate, size=len(data))
        return data
