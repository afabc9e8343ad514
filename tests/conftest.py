"""Shared fakes: deterministic clock, inline executor, audio input without a device"""

from concurrent.futures import Executor, Future

import numpy as np
import pytest

from shiur_recorder.core.ports.i_audio_input import IAudioInput, InputDevice


class FakeClock:
    """Monotonic clock moved by hand"""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


class SyncExecutor(Executor):
    """Runs submitted work immediately on the calling thread"""

    def __init__(self):
        self.submitted = 0
        self._shutdown = False

    def submit(self, fn, *args, **kwargs):
        if self._shutdown:
            raise RuntimeError("cannot schedule new futures after shutdown")
        self.submitted += 1
        future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)
        return future

    def shutdown(self, wait=True, **kwargs):
        self._shutdown = True


class FakeAudioInput(IAudioInput):
    """Records calls instead of opening a stream"""

    def __init__(self, sample_rate: int = 1000):
        self._rate = sample_rate
        self.on_block = None
        self.stopped = False

    def list_input_devices(self):
        return [InputDevice(id=0, name="Fake Mic", max_input_channels=1, default_samplerate=1000.0)]

    def start_stream(self, on_block):
        self.on_block = on_block

    def stop_stream(self):
        self.stopped = True

    @property
    def sample_rate(self):
        return self._rate


def block(amplitude: float, size: int = 100) -> np.ndarray:
    """Constant float32 block; loudness is amplitude * 128"""
    return np.full((size, 1), amplitude, dtype=np.float32)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sync_executor():
    return SyncExecutor()


@pytest.fixture
def fake_input():
    return FakeAudioInput()
