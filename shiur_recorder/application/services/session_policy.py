# shiur_recorder/application/services/session_policy.py

"""Session Policy - keep or discard a finished session, export off the audio thread."""

from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

import numpy as np
import structlog

from shiur_recorder.core.exceptions import EncoderError, ExportError
from shiur_recorder.core.ports.i_audio_encoder import IAudioEncoder
from shiur_recorder.core.ports.i_recording_exporter import IRecordingExporter
from shiur_recorder.infrastructure.adapters.export import suggested_filename

logger = structlog.get_logger()

ExportCallback = Callable[[bool, dict], None]


class SessionOutcomeKind(Enum):
    """What happened to a finished session"""
    SAVED = "saved"  # Handed to encoder/exporter
    DISCARDED_TOO_SHORT = "discarded_too_short"
    EXPORT_REJECTED = "export_rejected"  # Worker unavailable (shutting down)


@dataclass(frozen=True)
class SessionOutcome:
    kind: SessionOutcomeKind
    duration_seconds: float
    sample_count: int
    sample_rate: int
    filename: Optional[str] = None

    @property
    def saved(self) -> bool:
        return self.kind == SessionOutcomeKind.SAVED

    def to_dict(self) -> dict:
        data = {
            'outcome': self.kind.value,
            'duration_s': round(self.duration_seconds, 2),
            'samples': self.sample_count,
            'sample_rate': self.sample_rate
        }
        if self.filename:
            data['filename'] = self.filename
        return data

    def __str__(self) -> str:
        if self.saved:
            return f"Saved {self.filename} ({self.duration_seconds:.1f}s)"
        if self.kind == SessionOutcomeKind.DISCARDED_TOO_SHORT:
            return f"Discarded, too short ({self.duration_seconds:.1f}s)"
        return f"Not saved ({self.kind.value})"


class SessionPolicy:
    """
    Applies the minimum-duration rule.

    Accepted sessions are encoded and exported on a single background
    worker, so accept() returns without touching the disk. Export
    failures are logged and reported through on_export_result; the
    recording is lost and never retried.
    """

    def __init__(
            self,
            encoder: IAudioEncoder,
            exporter: IRecordingExporter,
            min_session_seconds: float = 11.0,
            file_prefix: str = "shiur",
            executor: Optional[Executor] = None,
            on_export_result: Optional[ExportCallback] = None,
            wall_clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc)
    ):
        """
        Args:
            encoder: Samples -> container bytes
            exporter: Container bytes -> persisted file
            min_session_seconds: Shorter sessions are discarded
            file_prefix: Filename prefix ("shiur-<timestamp>.wav")
            executor: Background executor (default: one worker thread)
            on_export_result: Called with (success, details) from the worker
            wall_clock: Source of the filename timestamp
        """
        self.encoder = encoder
        self.exporter = exporter
        self.min_session_seconds = min_session_seconds
        self.file_prefix = file_prefix
        self.on_export_result = on_export_result
        self._wall_clock = wall_clock
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="shiur-export"
        )

        logger.info("session_policy_initialized",
                    min_session_seconds=min_session_seconds,
                    file_prefix=file_prefix)

    def accept(self, samples: np.ndarray, duration_seconds: float, sample_rate: int) -> SessionOutcome:
        """
        Keep or discard a finished session.

        Returns:
            SAVED once export has been scheduled, DISCARDED_TOO_SHORT otherwise
        """
        sample_count = len(samples)

        if duration_seconds < self.min_session_seconds:
            logger.info("session_too_short",
                        duration_s=round(duration_seconds, 2),
                        min_session_seconds=self.min_session_seconds)
            return SessionOutcome(
                kind=SessionOutcomeKind.DISCARDED_TOO_SHORT,
                duration_seconds=duration_seconds,
                sample_count=sample_count,
                sample_rate=sample_rate
            )

        filename = suggested_filename(
            prefix=self.file_prefix,
            extension=self.encoder.extension,
            when=self._wall_clock()
        )

        try:
            future = self._executor.submit(self._encode_and_export, samples, sample_rate, filename)
        except RuntimeError as e:
            logger.error("export_submit_failed", filename=filename, error=str(e))
            return SessionOutcome(
                kind=SessionOutcomeKind.EXPORT_REJECTED,
                duration_seconds=duration_seconds,
                sample_count=sample_count,
                sample_rate=sample_rate,
                filename=filename
            )

        future.add_done_callback(self._log_unexpected_failure)

        return SessionOutcome(
            kind=SessionOutcomeKind.SAVED,
            duration_seconds=duration_seconds,
            sample_count=sample_count,
            sample_rate=sample_rate,
            filename=filename
        )

    def _encode_and_export(self, samples: np.ndarray, sample_rate: int, filename: str) -> Optional[Path]:
        """Worker: encode, write, report. Runs off the audio thread."""
        try:
            data = self.encoder.encode(samples, sample_rate)
            path = self.exporter.export(data, filename)
        except (EncoderError, ExportError) as e:
            logger.error("session_export_failed", filename=filename, error=str(e))
            self._notify(False, {'filename': filename, 'error': str(e)})
            return None

        self._notify(True, {'filename': filename, 'path': str(path), 'size': len(data)})
        return path

    def _notify(self, success: bool, details: dict) -> None:
        if self.on_export_result is None:
            return
        try:
            self.on_export_result(success, details)
        except Exception as e:
            logger.warning("export_result_callback_error", error=str(e))

    @staticmethod
    def _log_unexpected_failure(future: Future) -> None:
        if future.cancelled():
            logger.warning("session_export_cancelled")
            return
        error = future.exception()
        if error is not None:
            logger.error("session_export_crashed", error=str(error), exc_info=error)

    def shutdown(self, wait: bool = True) -> None:
        """Finish pending exports (only shuts down an executor we created)"""
        if self._owns_executor:
            self._executor.shutdown(wait=wait)
            logger.info("session_policy_shutdown", waited=wait)
