# shiur_recorder/application/services/recorder_orchestrator.py

"""Recorder Orchestrator - routes frames to calibration or detection and owns sessions."""

import threading
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

import numpy as np
import structlog

from shiur_recorder.core.logging.event_log import EventLog
from shiur_recorder.infrastructure.adapters.audio.vad import (
    Calibrator,
    CalibrationResult,
    Frame,
    FrameSampler,
    SessionBuffer,
    VADConfig,
    VADEvent,
    VADEventKind,
    VADPhase,
    VADStateMachine
)
from .session_policy import SessionOutcome, SessionOutcomeKind, SessionPolicy

logger = structlog.get_logger()

EventListener = Callable[[VADEvent], None]

_DEBUG_EVENTS = {
    VADEventKind.THRESHOLD_CROSSED,
    VADEventKind.START_HOLD_RESET,
    VADEventKind.QUIET_STARTED,
    VADEventKind.QUIET_RESET,
}

_OUTCOME_EVENTS = {
    SessionOutcomeKind.SAVED: VADEventKind.SESSION_SAVED,
    SessionOutcomeKind.DISCARDED_TOO_SHORT: VADEventKind.SESSION_DISCARDED,
    SessionOutcomeKind.EXPORT_REJECTED: VADEventKind.SESSION_REJECTED,
}


@dataclass(frozen=True)
class RecorderStatus:
    """Snapshot for the presentation layer"""
    phase: VADPhase
    calibrating: bool
    current_rms: float
    calibration_level: float
    start_threshold: float
    stop_threshold: float
    double_threshold: float
    start_hold_seconds: float
    manual_override: bool
    quiet_seconds: int
    recording_seconds: float
    last_outcome: Optional[SessionOutcome]

    @property
    def label(self) -> str:
        if self.calibrating:
            return "Calibrating..."
        if self.phase == VADPhase.RECORDING:
            return f"Recording {int(self.recording_seconds)}s"
        if self.phase in (VADPhase.LISTENING, VADPhase.STARTING):
            return "Listening for audio..."
        return self.phase.value.capitalize()


class RecorderOrchestrator:
    """
    Single consumer of the audio stream.

    Each frame goes either to the calibrator or to the VAD state machine,
    never both. Operator actions take the same lock as frame processing,
    so a threshold edit or recalibration lands between two frames.
    Every decision is published as a VADEvent to the event log and to
    subscribed listeners.
    """

    def __init__(
            self,
            policy: SessionPolicy,
            config: Optional[VADConfig] = None,
            sampler: Optional[FrameSampler] = None,
            calibrator: Optional[Calibrator] = None,
            event_log: Optional[EventLog] = None,
            calibration_ms: int = 5000,
            recalibrate_after_session: bool = False,
            sample_dtype: np.dtype = np.float32,
            clock: Callable[[], float] = time.monotonic
    ):
        """
        Args:
            policy: Keep/discard decision and export
            config: Initial thresholds (start thresholds come from calibration)
            sampler: Loudness measurement
            calibrator: Ambient calibration
            event_log: Bounded observability log
            calibration_ms: Calibration window
            recalibrate_after_session: Recalibrate after every finished session
            sample_dtype: dtype of empty recordings
            clock: Monotonic clock for operator actions (frames carry their own time)
        """
        self.policy = policy
        self.config = config if config is not None else VADConfig()
        self.sampler = sampler if sampler is not None else FrameSampler()
        self.calibrator = calibrator if calibrator is not None else Calibrator()
        self.event_log = event_log if event_log is not None else EventLog()
        self.calibration_ms = calibration_ms
        self.recalibrate_after_session = recalibrate_after_session
        self._clock = clock

        self.machine = VADStateMachine(self.config)
        self.buffer = SessionBuffer(dtype=sample_dtype)

        self.sample_rate: Optional[int] = None
        self.current_rms = 0.0
        self.last_outcome: Optional[SessionOutcome] = None

        self._lock = threading.RLock()
        self._listeners: List[EventListener] = []

        self.policy.on_export_result = self._on_export_result
        self.policy.min_session_seconds = self.config.min_session_seconds

        logger.info("recorder_orchestrator_initialized",
                    config=self.config.to_dict(),
                    calibration_ms=calibration_ms,
                    recalibrate_after_session=recalibrate_after_session)

    # ========================================
    # SUBSCRIPTIONS
    # ========================================

    def subscribe(self, listener: EventListener) -> Callable[[], None]:
        """Register a presentation callback; returns an unsubscribe function"""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    # ========================================
    # LIFECYCLE
    # ========================================

    def start(self, sample_rate: int) -> None:
        """Input is live: remember its rate and calibrate"""
        with self._lock:
            self.sample_rate = int(sample_rate)
            logger.info("recorder_starting", sample_rate=self.sample_rate)
            self._begin_calibration(self._clock(), reason="startup")

    def recalibrate(self) -> None:
        """
        Manual recalibration.

        A session in progress is handed to the policy first; onset timers
        are dropped and the machine stays IDLE for the calibration window.
        """
        with self._lock:
            now = self._clock()
            if self.machine.is_recording:
                self._dispatch(self.machine.end_session(now, reason="recalibration"))
                self._finish_session(now, rearm=False)
            self._begin_calibration(now, reason="manual")

    def stop_now(self) -> bool:
        """
        Hard abort of a STARTING or RECORDING session.
        Buffered audio is dropped, the policy is not consulted.

        Returns:
            True when something was aborted
        """
        with self._lock:
            event = self.machine.abort(self._clock(), reason="stop_now")
            if event is None:
                return False
            logger.info("session_buffer_dropped", **self.buffer.get_statistics())
            self.buffer.abort()
            self._dispatch(event)
            return True

    # ========================================
    # FRAMES
    # ========================================

    def on_block(self, samples: np.ndarray, timestamp: float) -> None:
        """Audio callback entry point"""
        self.on_frame(self.sampler.make_frame(samples, timestamp))

    def on_frame(self, frame: Frame) -> None:
        """Process one frame: calibration or detection, never both"""
        with self._lock:
            now = frame.timestamp
            rms = self.sampler.measure(frame)
            self.current_rms = rms

            if self.calibrator.is_running:
                result = self.calibrator.feed(rms, now)
                if result is not None:
                    self._apply_calibration(result, now)
                return

            if self.machine.is_recording:
                self.buffer.append_block(frame.samples)

            for event in self.machine.process(rms, now):
                self._dispatch(event)

                if event.kind == VADEventKind.SESSION_BEGIN:
                    self.buffer.begin_session(self.sample_rate, now)
                    self.buffer.append_block(frame.samples)
                elif event.kind == VADEventKind.SESSION_END:
                    self._finish_session(now)

    # ========================================
    # OPERATOR SETTINGS
    # ========================================

    def set_manual_calibration(self, threshold: float) -> None:
        """Fixed start threshold; double threshold follows at 2x"""
        with self._lock:
            self.calibrator.set_manual_override(threshold)
            self._apply_config(self.config.with_start_threshold(float(threshold)),
                               setting="manual_calibration")

    def clear_manual_calibration(self) -> None:
        """Back to the calibrated threshold"""
        with self._lock:
            result = self.calibrator.clear_manual_override()
            if result is not None:
                self._apply_config(self.config.with_start_threshold(result.start_threshold),
                                   setting="manual_calibration_cleared")

    def set_quiet_rms(self, value: float) -> None:
        """Stop threshold used by the quiet countdown"""
        if value < 0:
            raise ValueError("quiet RMS must be >= 0")
        with self._lock:
            self._apply_config(self.config.with_stop_threshold(float(value)), setting="quiet_rms")

    def set_start_hold_seconds(self, seconds: float) -> None:
        """Continuous time above the start threshold required to begin"""
        if seconds < 0:
            raise ValueError("start hold must be >= 0")
        with self._lock:
            self._apply_config(self.config.with_start_hold(float(seconds)), setting="start_hold_seconds")

    # ========================================
    # STATUS
    # ========================================

    def status(self) -> RecorderStatus:
        with self._lock:
            last = self.calibrator.last_result
            recording_seconds = 0.0
            if self.buffer.is_active:
                recording_seconds = max(0.0, self._clock() - self.buffer.started_at)

            return RecorderStatus(
                phase=self.machine.phase,
                calibrating=self.calibrator.is_running,
                current_rms=self.current_rms,
                calibration_level=last.average_level if last else 0.0,
                start_threshold=self.config.start_threshold,
                stop_threshold=self.config.stop_threshold,
                double_threshold=self.config.double_threshold,
                start_hold_seconds=self.config.start_hold_seconds,
                manual_override=self.calibrator.manual_override is not None,
                quiet_seconds=self.machine.quiet_seconds,
                recording_seconds=recording_seconds,
                last_outcome=self.last_outcome
            )

    # ========================================
    # INTERNALS
    # ========================================

    def _begin_calibration(self, now: float, reason: str) -> None:
        self.machine.disarm()
        self.calibrator.begin(now, self.calibration_ms)
        self._dispatch(VADEvent(
            kind=VADEventKind.CALIBRATION_STARTED,
            phase=self.machine.phase,
            timestamp=now,
            details={'reason': reason, 'duration_ms': self.calibration_ms}
        ))

    def _apply_calibration(self, result: CalibrationResult, now: float) -> None:
        self.config = self.config.with_start_threshold(result.start_threshold)
        self.machine.update_config(self.config)
        self._dispatch(VADEvent(
            kind=VADEventKind.CALIBRATED,
            phase=self.machine.phase,
            timestamp=now,
            details=result.to_dict()
        ))
        self._dispatch(self.machine.arm(now))

    def _apply_config(self, config: VADConfig, setting: str) -> None:
        self.machine.update_config(config)
        self.config = config
        self.policy.min_session_seconds = config.min_session_seconds
        self._dispatch(VADEvent(
            kind=VADEventKind.CONFIG_CHANGED,
            phase=self.machine.phase,
            timestamp=self._clock(),
            details={'setting': setting, **config.to_dict()}
        ))

    def _finish_session(self, now: float, rearm: bool = True) -> None:
        """Hand the buffer to the policy; always re-arm detection afterwards"""
        try:
            sample_rate = self.buffer.sample_rate
            samples, duration = self.buffer.end_session(now)
            outcome = self.policy.accept(samples, duration, sample_rate)
            self.last_outcome = outcome

            kind = _OUTCOME_EVENTS[outcome.kind]
            self._dispatch(VADEvent(
                kind=kind,
                phase=self.machine.phase,
                timestamp=now,
                details=outcome.to_dict()
            ))
        finally:
            if rearm:
                if self.recalibrate_after_session:
                    self._begin_calibration(now, reason="after_session")
                else:
                    self._dispatch(self.machine.complete_stop(now))

    def _on_export_result(self, success: bool, details: dict) -> None:
        """Called from the export worker"""
        kind = VADEventKind.EXPORT_COMPLETED if success else VADEventKind.EXPORT_FAILED
        self._dispatch(VADEvent(
            kind=kind,
            phase=self.machine.phase,
            timestamp=self._clock(),
            details=details
        ))

    def _dispatch(self, event: VADEvent) -> None:
        if event.kind in (VADEventKind.EXPORT_FAILED, VADEventKind.SESSION_REJECTED):
            level = "error"
        elif event.kind == VADEventKind.SESSION_ABORTED:
            level = "warning"
        elif event.kind in _DEBUG_EVENTS:
            level = "debug"
        else:
            level = "info"

        self.event_log.record(event.kind.value, level=level, **event.to_dict())

        with self._lock:
            listeners = list(self._listeners)

        for listener in listeners:
            try:
                listener(event)
            except Exception as e:
                logger.warning("event_listener_error", kind=event.kind.value, error=str(e))
