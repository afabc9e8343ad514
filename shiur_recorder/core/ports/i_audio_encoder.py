"""Audio encoder port"""

from abc import ABC, abstractmethod
import numpy as np

class IAudioEncoder(ABC):
    """Abstract encoder turning finished samples into a container"""

    extension: str = "bin"

    @abstractmethod
    def encode(self, samples: np.ndarray, sample_rate: int) -> bytes:
        """
        Encode samples into a distributable container

        Args:
            samples: Flattened mono samples
            sample_rate: Sample rate as captured

        Returns:
            Container bytes
        """
        pass
