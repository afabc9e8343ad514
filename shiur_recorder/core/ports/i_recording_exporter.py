"""Recording exporter port"""

from abc import ABC, abstractmethod
from pathlib import Path

class IRecordingExporter(ABC):
    """Abstract sink for encoded recordings"""

    @abstractmethod
    def export(self, data: bytes, filename: str) -> Path:
        """Persist bytes under the suggested filename, return final location"""
        pass
