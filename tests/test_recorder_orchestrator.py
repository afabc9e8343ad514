"""End-to-end tests for the recorder core with a fake clock"""
import struct

import pytest

from conftest import FakeClock, SyncExecutor, block
from shiur_recorder.application.services import RecorderOrchestrator, SessionPolicy
from shiur_recorder.core.exceptions import EncoderError
from shiur_recorder.core.logging import EventLog
from shiur_recorder.infrastructure.adapters.audio.vad import VADConfig, VADEventKind, VADPhase
from shiur_recorder.infrastructure.adapters.encoders import WavEncoder
from shiur_recorder.infrastructure.adapters.export import FileExporter

AMBIENT = 0.01  # rms 1.28 -> start 3.2, double 6.4
LOUD = 0.2      # rms 25.6, above the immediate threshold
MEDIUM = 0.04   # rms 5.12, between start and double
STEP = 0.5


class FlakyEncoder(WavEncoder):
    """Fails the first encode only"""

    def __init__(self):
        self.calls = 0

    def encode(self, samples, sample_rate):
        self.calls += 1
        if self.calls == 1:
            raise EncoderError("boom")
        return super().encode(samples, sample_rate)


class Harness:
    """Drives the orchestrator with frames on a shared fake clock"""

    def __init__(self, tmp_path, encoder=None, config=None, executor=None):
        self.clock = FakeClock()
        self.record_dir = tmp_path / "recordings"
        self.executor = executor or SyncExecutor()
        self.event_log = EventLog(max_entries=500)
        self.policy = SessionPolicy(
            encoder=encoder or WavEncoder(),
            exporter=FileExporter(record_dir=str(self.record_dir)),
            executor=self.executor
        )
        self.orchestrator = RecorderOrchestrator(
            policy=self.policy,
            config=config or VADConfig(stop_threshold=4.0),
            event_log=self.event_log,
            calibration_ms=5000,
            clock=self.clock
        )
        self.events = []
        self.orchestrator.subscribe(self.events.append)

    def feed(self, amplitude, seconds):
        """Feed STEP-spaced frames covering `seconds`"""
        for _ in range(int(seconds / STEP)):
            self.clock.advance(STEP)
            self.orchestrator.on_block(block(amplitude), self.clock.now)

    def calibrate(self):
        self.orchestrator.start(1000)
        self.feed(AMBIENT, 5.0)

    def kinds(self):
        return [e.kind for e in self.events]

    def recordings(self):
        if not self.record_dir.exists():
            return []
        return sorted(self.record_dir.iterdir())


@pytest.fixture
def harness(tmp_path):
    return Harness(tmp_path)


@pytest.fixture
def listening(harness):
    harness.calibrate()
    assert harness.orchestrator.machine.phase == VADPhase.LISTENING
    return harness


class TestCalibrationRouting:

    def test_start_calibrates_then_listens(self, harness):
        harness.calibrate()

        assert harness.kinds()[:3] == [VADEventKind.CALIBRATION_STARTED,
                                       VADEventKind.CALIBRATED,
                                       VADEventKind.LISTENING]
        config = harness.orchestrator.config
        assert config.start_threshold == pytest.approx(3.2, rel=1e-3)
        assert config.double_threshold == pytest.approx(6.4, rel=1e-3)
        assert config.stop_threshold == 4.0

    def test_loud_frames_during_calibration_do_not_record(self, harness):
        harness.orchestrator.start(1000)
        harness.feed(LOUD, 4.5)

        assert harness.orchestrator.machine.phase == VADPhase.IDLE
        assert VADEventKind.SESSION_BEGIN not in harness.kinds()
        assert harness.orchestrator.status().label == "Calibrating..."

    def test_frames_before_start_are_ignored(self, harness):
        harness.feed(LOUD, 2.0)
        assert harness.events == []


class TestSessions:

    def test_full_session_is_saved(self, listening):
        listening.feed(LOUD, 15.0)
        assert listening.orchestrator.machine.is_recording
        assert listening.orchestrator.status().label.startswith("Recording")

        listening.feed(AMBIENT, 19.0)
        assert listening.orchestrator.machine.is_recording

        listening.feed(AMBIENT, 0.5)
        kinds = listening.kinds()
        assert VADEventKind.SESSION_END in kinds
        assert VADEventKind.EXPORT_COMPLETED in kinds
        assert VADEventKind.SESSION_SAVED in kinds
        assert kinds[-1] == VADEventKind.LISTENING
        assert listening.orchestrator.machine.phase == VADPhase.LISTENING

        files = listening.recordings()
        assert len(files) == 1
        assert files[0].name.startswith("shiur-")
        # 30 loud + 39 quiet frames of 100 samples, 2 bytes each
        assert files[0].stat().st_size == 44 + 69 * 100 * 2
        assert listening.orchestrator.last_outcome.saved

    def test_hold_start_with_medium_level(self, listening):
        listening.feed(MEDIUM, 0.5)
        assert listening.orchestrator.machine.phase == VADPhase.STARTING

        listening.feed(MEDIUM, 0.5)
        assert listening.orchestrator.machine.is_recording

    def test_dead_zone_keeps_countdown(self, listening):
        listening.feed(LOUD, 1.0)
        listening.feed(AMBIENT, 5.0)
        quiet = listening.orchestrator.status().quiet_seconds
        assert quiet > 0

        listening.feed(MEDIUM, 5.0)
        assert listening.orchestrator.machine.quiet_timer is not None

    def test_loud_frame_resets_countdown(self, listening):
        listening.feed(LOUD, 1.0)
        listening.feed(AMBIENT, 10.0)
        listening.feed(LOUD, 0.5)

        assert listening.orchestrator.status().quiet_seconds == 0
        listening.feed(AMBIENT, 19.0)
        assert listening.orchestrator.machine.is_recording

    def test_stop_now_aborts_without_saving(self, listening):
        listening.feed(LOUD, 3.0)

        assert listening.orchestrator.stop_now() is True

        assert listening.kinds()[-1] == VADEventKind.SESSION_ABORTED
        assert listening.orchestrator.machine.phase == VADPhase.LISTENING
        assert not listening.orchestrator.buffer.is_active
        assert listening.recordings() == []
        assert listening.orchestrator.stop_now() is False

    def test_next_session_starts_after_abort(self, listening):
        listening.feed(LOUD, 2.0)
        listening.orchestrator.stop_now()

        listening.feed(LOUD, 0.5)
        assert listening.orchestrator.machine.is_recording
        assert listening.orchestrator.buffer.block_count == 1


class TestRecalibration:

    def test_recalibration_while_recording_discards_short_session(self, listening):
        listening.feed(LOUD, 3.0)

        listening.orchestrator.recalibrate()

        kinds = listening.kinds()
        assert VADEventKind.SESSION_END in kinds
        assert VADEventKind.SESSION_DISCARDED in kinds
        assert kinds[-1] == VADEventKind.CALIBRATION_STARTED
        assert listening.orchestrator.machine.phase == VADPhase.IDLE
        assert listening.recordings() == []

    def test_recalibration_while_recording_keeps_long_session(self, listening):
        listening.feed(LOUD, 12.0)
        listening.orchestrator.recalibrate()
        assert len(listening.recordings()) == 1

    def test_recalibration_drops_hold_timer(self, listening):
        listening.feed(MEDIUM, 0.5)
        assert listening.orchestrator.machine.start_sound_timer is not None

        listening.orchestrator.recalibrate()
        assert listening.orchestrator.machine.start_sound_timer is None

        listening.feed(AMBIENT, 5.0)
        assert listening.orchestrator.machine.phase == VADPhase.LISTENING

    def test_recalibrate_after_session(self, tmp_path):
        h = Harness(tmp_path)
        h.orchestrator.recalibrate_after_session = True
        h.calibrate()
        h.feed(LOUD, 12.0)
        h.feed(AMBIENT, 20.0)

        assert h.kinds()[-1] == VADEventKind.CALIBRATION_STARTED
        assert h.orchestrator.calibrator.is_running


class TestOperatorSettings:

    def test_manual_calibration(self, listening):
        listening.orchestrator.set_manual_calibration(10.0)

        status = listening.orchestrator.status()
        assert status.start_threshold == 10.0
        assert status.double_threshold == 20.0
        assert status.manual_override
        assert listening.kinds()[-1] == VADEventKind.CONFIG_CHANGED

        listening.feed(MEDIUM, 2.0)
        assert listening.orchestrator.machine.phase == VADPhase.LISTENING

    def test_manual_calibration_survives_recalibration(self, listening):
        listening.orchestrator.set_manual_calibration(10.0)
        listening.orchestrator.recalibrate()
        listening.feed(AMBIENT, 5.0)
        assert listening.orchestrator.config.start_threshold == 10.0

    def test_clear_manual_calibration(self, listening):
        listening.orchestrator.set_manual_calibration(10.0)
        listening.orchestrator.clear_manual_calibration()

        assert listening.orchestrator.config.start_threshold == pytest.approx(3.2, rel=1e-3)
        assert not listening.orchestrator.status().manual_override

    def test_quiet_rms_and_hold(self, listening):
        listening.orchestrator.set_quiet_rms(2.0)
        listening.orchestrator.set_start_hold_seconds(1.5)

        config = listening.orchestrator.config
        assert config.stop_threshold == 2.0
        assert config.start_hold_seconds == 1.5
        assert listening.orchestrator.machine.config is config

    def test_negative_settings_rejected(self, listening):
        with pytest.raises(ValueError):
            listening.orchestrator.set_quiet_rms(-1.0)
        with pytest.raises(ValueError):
            listening.orchestrator.set_start_hold_seconds(-0.5)


class TestFailureIsolation:

    def test_encoder_failure_does_not_stop_detection(self, tmp_path):
        h = Harness(tmp_path, encoder=FlakyEncoder())
        h.calibrate()

        h.feed(LOUD, 12.0)
        h.feed(AMBIENT, 20.0)
        assert VADEventKind.EXPORT_FAILED in h.kinds()
        assert h.orchestrator.machine.phase == VADPhase.LISTENING
        assert h.recordings() == []

        h.feed(LOUD, 12.0)
        h.feed(AMBIENT, 20.0)
        assert len(h.recordings()) == 1

    def test_listener_error_is_contained(self, listening):
        def broken(event):
            raise RuntimeError("display gone")

        listening.orchestrator.subscribe(broken)
        listening.feed(LOUD, 1.0)
        assert listening.orchestrator.machine.is_recording

    def test_unsubscribe(self, listening):
        seen = []
        unsubscribe = listening.orchestrator.subscribe(seen.append)
        unsubscribe()
        listening.feed(LOUD, 1.0)
        assert seen == []

    def test_events_reach_event_log(self, listening):
        names = [r.event for r in listening.orchestrator.event_log.recent()]
        assert names[:3] == ["calibration_started", "calibrated", "listening"]


class TestSessionBookkeeping:

    def test_injected_empty_event_log_is_used(self, harness):
        assert len(harness.event_log) == 0
        assert harness.orchestrator.event_log is harness.event_log

        harness.calibrate()
        assert len(harness.event_log) >= 3

    def test_minimum_duration_comes_from_config(self, tmp_path):
        h = Harness(tmp_path, config=VADConfig(stop_threshold=4.0, min_session_seconds=5.0))
        assert h.policy.min_session_seconds == 5.0

        h.calibrate()
        h.feed(LOUD, 7.5)
        h.orchestrator.recalibrate()

        assert h.orchestrator.last_outcome.saved
        assert len(h.recordings()) == 1

    def test_minimum_duration_survives_config_edits(self, tmp_path):
        h = Harness(tmp_path, config=VADConfig(stop_threshold=4.0, min_session_seconds=5.0))
        h.orchestrator.set_quiet_rms(3.0)
        assert h.policy.min_session_seconds == 5.0

    def test_rejected_export_is_not_reported_as_too_short(self, tmp_path):
        executor = SyncExecutor()
        h = Harness(tmp_path, executor=executor)
        h.calibrate()
        executor.shutdown()

        h.feed(LOUD, 15.0)
        h.orchestrator.recalibrate()

        kinds = h.kinds()
        assert VADEventKind.SESSION_REJECTED in kinds
        assert VADEventKind.SESSION_DISCARDED not in kinds
        rejected = [e for e in h.events if e.kind == VADEventKind.SESSION_REJECTED][0]
        assert rejected.details['outcome'] == "export_rejected"
        assert rejected.details['duration_s'] == 14.5

    def test_session_keeps_its_starting_sample_rate(self, listening):
        listening.feed(LOUD, 12.0)
        listening.orchestrator.sample_rate = 48000

        listening.orchestrator.recalibrate()

        assert listening.orchestrator.last_outcome.sample_rate == 1000
        data = listening.recordings()[0].read_bytes()
        assert struct.unpack("<I", data[24:28])[0] == 1000
