# shiur_recorder/infrastructure/adapters/audio/vad/models/frame.py

"""Audio frame model."""

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class Frame:
    """One device block of mono samples and its monotonic capture time."""

    samples: np.ndarray
    timestamp: float

    def __len__(self) -> int:
        return len(self.samples)
