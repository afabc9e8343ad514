"""Audio container encoders."""

from .wav_encoder import WavEncoder, to_pcm16, to_wav_bytes

__all__ = ['WavEncoder', 'to_pcm16', 'to_wav_bytes']
