# shiur_recorder/infrastructure/adapters/audio/sounddevice_capture.py

"""Live microphone input over sounddevice (PortAudio)."""

import time
from typing import Callable, List, Optional, Union

import numpy as np
import sounddevice as sd
import structlog

from shiur_recorder.core.exceptions import InputUnavailableError
from shiur_recorder.core.ports.i_audio_input import IAudioInput, InputDevice

logger = structlog.get_logger()

DeviceIdentifier = Union[int, str, None]


class SoundDeviceCapture(IAudioInput):
    """
    Device-driven capture: PortAudio calls back once per block and the
    block is handed on with its monotonic timestamp. Nothing here blocks
    the callback thread.
    """

    def __init__(
            self,
            sample_rate: Optional[int] = None,
            block_size: int = 2048,
            dtype: str = 'float32',
            device: DeviceIdentifier = None,
            preferred_device_name: Optional[str] = None,
            clock: Callable[[], float] = time.monotonic
    ):
        """
        Args:
            sample_rate: Fixed rate, or None for the device's native rate
            block_size: Samples per callback
            dtype: Sample format ('float32', 'int16', 'uint8')
            device: Index or (partial) name; None = preferred or system default
            preferred_device_name: Picked automatically when present
            clock: Timestamp source for frames
        """
        self.requested_sample_rate = sample_rate
        self.block_size = block_size
        self.dtype = dtype
        self.device = device
        self.preferred_device_name = preferred_device_name
        self._clock = clock
        self.stream = None
        self._sample_rate: Optional[int] = None
        self.overflow_count = 0

        logger.info("audio_capture_initialized",
                    sample_rate=sample_rate if sample_rate else "device_default",
                    block_size=block_size,
                    dtype=dtype,
                    device=device if device is not None else "default")

    @property
    def sample_rate(self) -> Optional[int]:
        return self._sample_rate

    @property
    def is_active(self) -> bool:
        return bool(self.stream is not None and self.stream.active)

    # ========================================
    # DEVICES
    # ========================================

    def list_input_devices(self) -> List[InputDevice]:
        """Enumerate devices with at least one input channel"""
        try:
            devices = sd.query_devices()
        except sd.PortAudioError as e:
            logger.error("device_query_failed", error=str(e))
            raise InputUnavailableError(f"Cannot enumerate audio devices: {e}") from e

        return [
            InputDevice(
                id=index,
                name=info['name'],
                max_input_channels=int(info['max_input_channels']),
                default_samplerate=float(info['default_samplerate'])
            )
            for index, info in enumerate(devices)
            if info['max_input_channels'] > 0
        ]

    def resolve_device(self, identifier: DeviceIdentifier = None) -> Optional[int]:
        """
        Map an identifier to a PortAudio index.

        None -> preferred device if connected, else None (system default).
        int / digit string -> that index, must be an input.
        other string -> exact name, then case-insensitive substring.
        """
        inputs = self.list_input_devices()

        if identifier is None:
            if self.preferred_device_name:
                for device in inputs:
                    if device.name == self.preferred_device_name:
                        logger.info("preferred_device_selected", device=device.name)
                        return device.id
            return None

        if isinstance(identifier, int) or (isinstance(identifier, str) and identifier.isdigit()):
            index = int(identifier)
            for device in inputs:
                if device.id == index:
                    return index
            raise InputUnavailableError(f"No input device with id {index}")

        for device in inputs:
            if device.name == identifier:
                return device.id

        needle = identifier.lower()
        for device in inputs:
            if needle in device.name.lower():
                return device.id

        raise InputUnavailableError(f"No input device matching '{identifier}'")

    # ========================================
    # STREAM
    # ========================================

    def start_stream(self, on_block: Callable[[np.ndarray, float], None]):
        """Open the input stream and start delivering blocks to on_block"""
        device = self.resolve_device(self.device)

        try:
            if self.requested_sample_rate:
                sample_rate = int(self.requested_sample_rate)
            else:
                info = sd.query_devices(device, 'input')
                sample_rate = int(info['default_samplerate'])

            def _callback(indata, frames, time_info, status):
                if status:
                    self.overflow_count += 1
                    logger.warning("audio_stream_status", status=str(status))
                try:
                    on_block(indata.copy(), self._clock())
                except Exception as e:
                    logger.error("audio_block_handler_failed", error=str(e), exc_info=True)
                    raise sd.CallbackAbort from e

            self.stream = sd.InputStream(
                device=device,
                channels=1,
                samplerate=sample_rate,
                blocksize=self.block_size,
                dtype=self.dtype,
                callback=_callback
            )
            self.stream.start()
        except (sd.PortAudioError, ValueError) as e:
            self.stream = None
            logger.error("failed_to_start_stream", error=str(e), device=device)
            raise InputUnavailableError(f"Microphone unavailable: {e}") from e

        self._sample_rate = sample_rate
        logger.info("audio_stream_started", device=device if device is not None else "default",
                    sample_rate=sample_rate)
        return self.stream

    def stop_stream(self):
        """Stop and close the stream"""
        if not self.stream:
            return
        try:
            self.stream.stop()
            self.stream.close()
            logger.info("audio_stream_stopped", overflows=self.overflow_count)
        except sd.PortAudioError as e:
            logger.error("stop_stream_error", error=str(e))
        finally:
            self.stream = None
