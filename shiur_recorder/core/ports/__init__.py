"""Ports (interfaces) between the core and its adapters."""

from .i_audio_input import IAudioInput, InputDevice
from .i_audio_encoder import IAudioEncoder
from .i_recording_exporter import IRecordingExporter

__all__ = [
    'IAudioInput',
    'InputDevice',
    'IAudioEncoder',
    'IRecordingExporter'
]
