"""
File exporter - accepted recordings land in the recordings directory
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import structlog

from shiur_recorder.core.exceptions import ExportError
from shiur_recorder.core.ports.i_recording_exporter import IRecordingExporter

logger = structlog.get_logger()


def suggested_filename(
        prefix: str = "shiur",
        extension: str = "wav",
        when: Optional[datetime] = None
) -> str:
    """
    Timestamped filename, e.g. shiur-2024-01-01T12-34-56-789Z.wav

    The timestamp is UTC ISO-8601 with millisecond precision and a trailing
    Z; ':' and '.' become '-' so the name is valid on every filesystem.
    """
    when = when or datetime.now(timezone.utc)
    if when.tzinfo is not None:
        when = when.astimezone(timezone.utc)

    iso = when.strftime("%Y-%m-%dT%H:%M:%S.") + f"{when.microsecond // 1000:03d}Z"
    stamp = iso.replace(":", "-").replace(".", "-")
    return f"{prefix}-{stamp}.{extension}"


class FileExporter(IRecordingExporter):
    """Writes each recording once, never overwriting an existing file"""

    def __init__(self, record_dir: str = "recordings"):
        """
        Args:
            record_dir: Target directory (created on first export)
        """
        self.record_dir = Path(record_dir)
        logger.debug("file_exporter_initialized", record_dir=str(self.record_dir))

    def export(self, data: bytes, filename: str) -> Path:
        target = self.record_dir / Path(filename).name

        try:
            self.record_dir.mkdir(parents=True, exist_ok=True)
            with open(target, 'xb') as f:
                f.write(data)
        except OSError as e:
            logger.error("export_write_failed", path=str(target), error=str(e))
            raise ExportError(f"Failed to write {target}: {e}") from e

        logger.info("recording_exported", path=str(target), size=len(data))
        return target
