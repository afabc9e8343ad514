"""Audio input port (interface)"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, List, Optional

import numpy as np


@dataclass(frozen=True)
class InputDevice:
    """Enumerated input device"""
    id: int
    name: str
    max_input_channels: int
    default_samplerate: float

    def __str__(self) -> str:
        return f"[{self.id}] {self.name} ({int(self.default_samplerate)} Hz)"


class IAudioInput(ABC):
    """Abstract live audio input interface"""

    @abstractmethod
    def list_input_devices(self) -> List[InputDevice]:
        """Enumerate devices that can capture audio"""
        pass

    @abstractmethod
    def start_stream(self, on_block: Callable[[np.ndarray, float], None]):
        """
        Start continuous capture.

        Args:
            on_block: Called from the audio thread with (samples, monotonic timestamp)
                      once per device callback
        """
        pass

    @abstractmethod
    def stop_stream(self):
        """Stop and close audio stream"""
        pass

    @property
    @abstractmethod
    def sample_rate(self) -> Optional[int]:
        """Sample rate of the running stream (None before start)"""
        pass
