# shiur_recorder/infrastructure/adapters/audio/vad/functionality/session_buffer.py

"""Session audio buffer - ordered blocks, flattened once at session end."""

from typing import List, Optional, Tuple

import numpy as np
import structlog

from shiur_recorder.core.exceptions import SessionStateError

logger = structlog.get_logger()


class SessionBuffer:
    """
    Holds the blocks of one recording session in arrival order.

    Blocks are kept as a list and concatenated once in end_session()
    instead of growing one array per block. A session is single use:
    end_session() and abort() both destroy it.
    """

    def __init__(self, dtype: np.dtype = np.float32):
        """
        Args:
            dtype: dtype of the empty array returned for a session without blocks
        """
        self.dtype = np.dtype(dtype)
        self._blocks: Optional[List[np.ndarray]] = None
        self._started_at: Optional[float] = None
        self._sample_rate: Optional[int] = None
        self._sample_count = 0

    @property
    def is_active(self) -> bool:
        return self._blocks is not None

    @property
    def started_at(self) -> Optional[float]:
        return self._started_at

    @property
    def sample_rate(self) -> Optional[int]:
        return self._sample_rate

    @property
    def block_count(self) -> int:
        return len(self._blocks) if self._blocks is not None else 0

    @property
    def sample_count(self) -> int:
        return self._sample_count

    def begin_session(self, sample_rate: int, now: float) -> None:
        """Create a new, empty session."""
        if self.is_active:
            raise SessionStateError("session already active")

        self._blocks = []
        self._started_at = now
        self._sample_rate = sample_rate
        self._sample_count = 0
        logger.debug("session_buffer_started", sample_rate=sample_rate)

    def append_block(self, samples: np.ndarray) -> None:
        """Append one block; order is playback order."""
        if not self.is_active:
            raise SessionStateError("no active session")

        block = np.asarray(samples).reshape(-1)
        self._blocks.append(block)
        self._sample_count += len(block)

    def end_session(self, now: float) -> Tuple[np.ndarray, float]:
        """
        Flatten all blocks and destroy the session.

        Returns:
            (flattened samples, duration in seconds since begin_session)
        """
        if not self.is_active:
            raise SessionStateError("no active session")

        blocks = self._blocks
        duration = now - self._started_at

        if blocks:
            samples = np.concatenate(blocks)
        else:
            samples = np.array([], dtype=self.dtype)

        logger.debug(
            "session_buffer_flattened",
            blocks=len(blocks),
            samples=len(samples),
            duration_s=round(duration, 2),
            size_mb=round(samples.nbytes / (1024 * 1024), 2)
        )

        self._reset()
        return samples, duration

    def abort(self) -> None:
        """Drop the session and its audio."""
        if not self.is_active:
            return
        logger.debug("session_buffer_aborted", blocks=len(self._blocks),
                     samples=self._sample_count)
        self._reset()

    def get_statistics(self) -> dict:
        return {
            'active': self.is_active,
            'blocks': self.block_count,
            'samples': self._sample_count,
            'sample_rate': self._sample_rate
        }

    def _reset(self) -> None:
        self._blocks = None
        self._started_at = None
        self._sample_rate = None
        self._sample_count = 0

    def __len__(self) -> int:
        return self.block_count
