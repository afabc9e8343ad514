# shiur_recorder/infrastructure/adapters/audio/vad/vad_state_machine.py

"""
VAD State Machine - energy threshold detection with hold and quiet timers.
Three-band hysteresis while recording: quiet / dead zone / loud.
"""

import math
from typing import List, Optional

from .models import VADConfig, VADEvent, VADEventKind, VADPhase


class VADStateMachine:
    """
    Decides when a recording session begins and ends.

    Phases:
    - IDLE: calibrating, frames are not evaluated
    - LISTENING / STARTING: watching for onset, STARTING while the hold timer runs
    - RECORDING: watching for sustained quiet
    - STOPPING: session handed off, complete_stop() returns to LISTENING

    Onset (LISTENING/STARTING):
    - loudness > start_threshold continuously for start_hold_seconds
    - or any single frame > immediate_start_threshold

    End (RECORDING):
    - loudness >= double_threshold cancels the quiet countdown
    - loudness < stop_threshold starts / continues the countdown
    - anything in between leaves the countdown untouched

    Timers are Optional timestamps; they restart the instant their
    condition breaks.
    """

    def __init__(self, config: Optional[VADConfig] = None):
        """
        Args:
            config: Thresholds and timings (replace via update_config)
        """
        self.config = config or VADConfig()
        self.config.validate()

        self._phase = VADPhase.IDLE
        self.start_sound_timer: Optional[float] = None
        self.quiet_timer: Optional[float] = None
        self._quiet_seconds = 0

    # ========================================
    # State
    # ========================================

    @property
    def phase(self) -> VADPhase:
        return self._phase

    @property
    def is_recording(self) -> bool:
        return self._phase == VADPhase.RECORDING

    @property
    def is_detecting(self) -> bool:
        """Onset detection is active (LISTENING or STARTING)"""
        return self._phase in (VADPhase.LISTENING, VADPhase.STARTING)

    @property
    def quiet_seconds(self) -> int:
        """Current quiet countdown value (0 when not counting)"""
        return self._quiet_seconds if self.quiet_timer is not None else 0

    def update_config(self, config: VADConfig) -> None:
        """Swap thresholds; applies from the next processed frame."""
        config.validate()
        self.config = config

    # ========================================
    # Lifecycle
    # ========================================

    def arm(self, now: float) -> VADEvent:
        """Enter LISTENING with clean timers (after calibration or a session)."""
        self._clear_timers()
        self._phase = VADPhase.LISTENING
        return self._event(VADEventKind.LISTENING, now)

    def disarm(self) -> None:
        """Back to IDLE (recalibration); pending timers are dropped."""
        self._clear_timers()
        self._phase = VADPhase.IDLE

    def complete_stop(self, now: float) -> VADEvent:
        """Finish the STOPPING step after the session has been handed off."""
        return self.arm(now)

    def abort(self, now: float, reason: str = "stop_now") -> Optional[VADEvent]:
        """
        Hard stop of a STARTING or RECORDING session.

        Returns:
            SESSION_ABORTED event, or None when there was nothing to abort
        """
        if self._phase not in (VADPhase.STARTING, VADPhase.RECORDING):
            return None

        previous = self._phase
        self._clear_timers()
        self._phase = VADPhase.LISTENING
        return self._event(
            VADEventKind.SESSION_ABORTED, now,
            reason=reason, from_phase=previous.value
        )

    # ========================================
    # Per-frame evaluation
    # ========================================

    def process(self, loudness: float, now: float) -> List[VADEvent]:
        """
        Evaluate one frame.

        Args:
            loudness: Frame RMS
            now: Frame timestamp (monotonic seconds)

        Returns:
            Events produced by this frame, in order
        """
        if self.is_detecting:
            return self._process_onset(loudness, now)
        if self._phase == VADPhase.RECORDING:
            return self._process_recording(loudness, now)
        return []

    def _process_onset(self, loudness: float, now: float) -> List[VADEvent]:
        events: List[VADEvent] = []
        config = self.config

        if loudness > config.start_threshold:
            if self.start_sound_timer is None:
                self.start_sound_timer = now
                self._phase = VADPhase.STARTING
                events.append(self._event(
                    VADEventKind.THRESHOLD_CROSSED, now, loudness,
                    start_threshold=round(config.start_threshold, 3)
                ))

            held = now - self.start_sound_timer
            if held >= config.start_hold_seconds:
                events.append(self._begin_recording(now, loudness, "hold", held=round(held, 3)))
        else:
            if self.start_sound_timer is not None:
                held = now - self.start_sound_timer
                self.start_sound_timer = None
                self._phase = VADPhase.LISTENING
                events.append(self._event(
                    VADEventKind.START_HOLD_RESET, now, loudness, held=round(held, 3)
                ))

        if self._phase != VADPhase.RECORDING and loudness > config.immediate_start_threshold:
            events.append(self._begin_recording(
                now, loudness, "immediate",
                immediate_start_threshold=config.immediate_start_threshold
            ))

        return events

    def _process_recording(self, loudness: float, now: float) -> List[VADEvent]:
        events: List[VADEvent] = []
        config = self.config

        if loudness >= config.double_threshold:
            if self.quiet_timer is not None:
                events.append(self._event(
                    VADEventKind.QUIET_RESET, now, loudness,
                    quiet_seconds=self._quiet_seconds,
                    double_threshold=round(config.double_threshold, 3)
                ))
            self.quiet_timer = None
            self._quiet_seconds = 0

        elif loudness < config.stop_threshold:
            if self.quiet_timer is None:
                self.quiet_timer = now
                events.append(self._event(
                    VADEventKind.QUIET_STARTED, now, loudness,
                    stop_threshold=round(config.stop_threshold, 3)
                ))

            self._quiet_seconds = math.floor(now - self.quiet_timer) + 1

            if self._quiet_seconds >= config.quiet_timeout_seconds:
                quiet_seconds = self._quiet_seconds
                self._clear_timers()
                self._phase = VADPhase.STOPPING
                events.append(self._event(
                    VADEventKind.SESSION_END, now, loudness,
                    reason="quiet_timeout", quiet_seconds=quiet_seconds
                ))

        # stop_threshold <= loudness < double_threshold: dead zone, timers untouched

        return events

    def end_session(self, now: float, reason: str) -> Optional[VADEvent]:
        """
        Soft stop requested from outside (e.g. recalibration while recording).

        Returns:
            SESSION_END event, or None when not recording
        """
        if self._phase != VADPhase.RECORDING:
            return None

        self._clear_timers()
        self._phase = VADPhase.STOPPING
        return self._event(VADEventKind.SESSION_END, now, reason=reason)

    # ========================================
    # Helpers
    # ========================================

    def _begin_recording(self, now: float, loudness: float, reason: str, **details) -> VADEvent:
        # A new session never inherits timers from the onset or a previous session
        self._clear_timers()
        self._phase = VADPhase.RECORDING
        return self._event(VADEventKind.SESSION_BEGIN, now, loudness, reason=reason, **details)

    def _clear_timers(self) -> None:
        self.start_sound_timer = None
        self.quiet_timer = None
        self._quiet_seconds = 0

    def _event(self, kind: VADEventKind, now: float, loudness: Optional[float] = None,
               **details) -> VADEvent:
        return VADEvent(kind=kind, phase=self._phase, timestamp=now,
                        loudness=loudness, details=details)

