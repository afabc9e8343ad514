"""Tests for onset detection and the quiet countdown"""
import pytest

from shiur_recorder.infrastructure.adapters.audio.vad import (
    VADConfig,
    VADEventKind,
    VADPhase,
    VADStateMachine
)


def kinds(events):
    return [e.kind for e in events]


@pytest.fixture
def config():
    # start 5, double 10, quiet 4
    return VADConfig(stop_threshold=4.0).with_start_threshold(5.0)


@pytest.fixture
def machine(config):
    m = VADStateMachine(config)
    m.arm(0.0)
    return m


@pytest.fixture
def recording(machine):
    machine.process(20.0, 0.0)
    assert machine.phase == VADPhase.RECORDING
    return machine


class TestLifecycle:

    def test_starts_idle_and_ignores_frames(self, config):
        m = VADStateMachine(config)
        assert m.phase == VADPhase.IDLE
        assert m.process(50.0, 1.0) == []

    def test_arm_enters_listening(self, config):
        m = VADStateMachine(config)
        event = m.arm(1.0)
        assert event.kind == VADEventKind.LISTENING
        assert m.phase == VADPhase.LISTENING

    def test_disarm_drops_timers(self, machine):
        machine.process(6.0, 1.0)
        assert machine.start_sound_timer is not None

        machine.disarm()
        assert machine.phase == VADPhase.IDLE
        assert machine.start_sound_timer is None

    def test_invalid_config_rejected(self, machine):
        with pytest.raises(ValueError):
            machine.update_config(VADConfig(quiet_timeout_seconds=0))


class TestOnset:

    def test_threshold_crossing_starts_hold(self, machine):
        events = machine.process(6.0, 1.0)

        assert kinds(events) == [VADEventKind.THRESHOLD_CROSSED]
        assert machine.phase == VADPhase.STARTING
        assert machine.start_sound_timer == 1.0

    def test_begins_after_hold(self, machine):
        machine.process(6.0, 1.0)
        assert machine.process(6.0, 1.125) == []

        events = machine.process(6.0, 1.25)
        assert kinds(events) == [VADEventKind.SESSION_BEGIN]
        assert events[0].details['reason'] == "hold"
        assert machine.is_recording

    def test_dip_resets_hold(self, machine):
        machine.process(6.0, 1.0)
        events = machine.process(1.0, 1.125)

        assert kinds(events) == [VADEventKind.START_HOLD_RESET]
        assert machine.phase == VADPhase.LISTENING
        assert machine.start_sound_timer is None

        machine.process(6.0, 1.25)
        assert machine.process(6.0, 1.375) == []
        assert machine.phase == VADPhase.STARTING

    def test_equal_to_start_threshold_does_not_cross(self, machine):
        assert machine.process(5.0, 1.0) == []
        assert machine.phase == VADPhase.LISTENING

    def test_immediate_start_above_12(self, machine):
        events = machine.process(12.5, 1.0)

        assert kinds(events) == [VADEventKind.THRESHOLD_CROSSED, VADEventKind.SESSION_BEGIN]
        assert events[-1].details['reason'] == "immediate"
        assert machine.is_recording

    def test_exactly_12_is_not_immediate(self, machine):
        events = machine.process(12.0, 1.0)
        assert kinds(events) == [VADEventKind.THRESHOLD_CROSSED]
        assert machine.phase == VADPhase.STARTING

    def test_immediate_start_below_calibrated_threshold(self):
        m = VADStateMachine(VADConfig().with_start_threshold(30.0))
        m.arm(0.0)

        events = m.process(13.0, 1.0)
        assert kinds(events) == [VADEventKind.SESSION_BEGIN]

    def test_zero_hold_begins_on_first_frame(self, config):
        m = VADStateMachine(config.with_start_hold(0.0))
        m.arm(0.0)
        events = m.process(6.0, 1.0)
        assert kinds(events) == [VADEventKind.THRESHOLD_CROSSED, VADEventKind.SESSION_BEGIN]

    def test_session_begins_with_clean_timers(self, recording):
        assert recording.start_sound_timer is None
        assert recording.quiet_timer is None
        assert recording.quiet_seconds == 0


class TestQuietCountdown:

    def test_quiet_frame_starts_countdown(self, recording):
        events = recording.process(1.0, 2.0)

        assert kinds(events) == [VADEventKind.QUIET_STARTED]
        assert recording.quiet_timer == 2.0
        assert recording.quiet_seconds == 1

    def test_countdown_value_is_floor_plus_one(self, recording):
        recording.process(1.0, 2.0)
        recording.process(1.0, 4.5)
        assert recording.quiet_seconds == 3

    def test_ends_after_twenty_seconds(self, recording):
        recording.process(1.0, 2.0)
        assert recording.process(1.0, 20.5) == []
        assert recording.is_recording

        events = recording.process(1.0, 21.0)
        assert kinds(events) == [VADEventKind.SESSION_END]
        assert events[0].details['quiet_seconds'] == 20
        assert recording.phase == VADPhase.STOPPING

    def test_loud_frame_resets_countdown(self, recording):
        recording.process(1.0, 2.0)
        events = recording.process(10.0, 10.0)

        assert kinds(events) == [VADEventKind.QUIET_RESET]
        assert recording.quiet_timer is None
        assert recording.quiet_seconds == 0

        recording.process(1.0, 11.0)
        assert recording.process(1.0, 29.5) == []
        assert recording.is_recording

    def test_reset_at_nineteen_seconds_restarts_count(self, recording):
        recording.process(1.0, 2.0)
        recording.process(1.0, 20.5)
        assert recording.quiet_seconds == 19

        events = recording.process(10.0, 20.75)
        assert kinds(events) == [VADEventKind.QUIET_RESET]
        assert recording.quiet_seconds == 0

        events = recording.process(1.0, 21.0)
        assert kinds(events) == [VADEventKind.QUIET_STARTED]
        assert recording.quiet_seconds == 1
        assert recording.is_recording

    def test_dead_zone_leaves_countdown_untouched(self, recording):
        recording.process(1.0, 2.0)
        assert recording.process(7.0, 10.0) == []
        assert recording.quiet_timer == 2.0

        events = recording.process(1.0, 21.0)
        assert kinds(events) == [VADEventKind.SESSION_END]

    def test_dead_zone_does_not_start_countdown(self, recording):
        recording.process(7.0, 2.0)
        assert recording.quiet_timer is None

    def test_stop_threshold_is_exclusive(self, recording):
        recording.process(4.0, 2.0)
        assert recording.quiet_timer is None

    def test_zero_thresholds_never_stop(self):
        m = VADStateMachine(VADConfig(stop_threshold=0.0).with_start_threshold(0.0))
        m.arm(0.0)
        m.process(0.5, 0.0)
        m.process(0.5, 0.25)
        assert m.is_recording

        for t in range(1, 60):
            assert m.process(0.0, float(t)) == []
        assert m.is_recording

    def test_complete_stop_returns_to_listening(self, recording):
        recording.process(1.0, 2.0)
        recording.process(1.0, 21.0)

        event = recording.complete_stop(21.0)
        assert event.kind == VADEventKind.LISTENING
        assert recording.phase == VADPhase.LISTENING
        assert recording.quiet_timer is None


class TestExternalStops:

    def test_abort_while_recording(self, recording):
        recording.process(1.0, 2.0)
        event = recording.abort(3.0)

        assert event.kind == VADEventKind.SESSION_ABORTED
        assert event.details['from_phase'] == "recording"
        assert recording.phase == VADPhase.LISTENING
        assert recording.quiet_timer is None

    def test_abort_while_starting(self, machine):
        machine.process(6.0, 1.0)
        event = machine.abort(1.1)
        assert event.details['from_phase'] == "starting"
        assert machine.start_sound_timer is None

    def test_abort_when_listening_is_noop(self, machine):
        assert machine.abort(1.0) is None
        assert machine.phase == VADPhase.LISTENING

    def test_end_session_is_soft_stop(self, recording):
        event = recording.end_session(5.0, reason="recalibration")
        assert event.kind == VADEventKind.SESSION_END
        assert event.details['reason'] == "recalibration"
        assert recording.phase == VADPhase.STOPPING

    def test_end_session_when_not_recording(self, machine):
        assert machine.end_session(1.0, reason="recalibration") is None

    def test_config_swap_applies_to_next_frame(self, machine):
        machine.update_config(machine.config.with_start_threshold(8.0))
        assert machine.process(6.0, 1.0) == []
        assert kinds(machine.process(9.0, 1.5)) == [VADEventKind.THRESHOLD_CROSSED]
