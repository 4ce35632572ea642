import logging
import threading

import pytest

from power_agent.power.controller import PowerActionResult, PowerBackend
from power_agent.result import ProbeResult

ON = ProbeResult.ok(True)
OFF = ProbeResult.ok(False)


def err(msg="probe failed"):
    return ProbeResult.failed(msg)


class ScriptedBackend(PowerBackend):
    """Returns one scripted (primary, secondary) pair per round; repeats the last pair."""
    name = "scripted"

    def __init__(self, rounds, on_result=None, off_result=None):
        self.rounds = list(rounds)
        self.on_result = on_result or PowerActionResult(True, "pressed")
        self.off_result = off_result or PowerActionResult(True, "pressed")
        self.primary_calls = 0
        self.secondary_calls = 0
        self.power_on_calls = 0
        self.power_off_calls = 0
        self._lock = threading.Lock()

    def _pick(self, index):
        return self.rounds[min(index, len(self.rounds) - 1)]

    def probe_primary(self):
        with self._lock:
            i = self.primary_calls
            self.primary_calls += 1
        return self._pick(i)[0]

    def probe_secondary(self):
        with self._lock:
            i = self.secondary_calls
            self.secondary_calls += 1
        return self._pick(i)[1]

    def power_on(self):
        self.power_on_calls += 1
        return self.on_result

    def power_off(self):
        self.power_off_calls += 1
        return self.off_result


class FakeClock:
    """Virtual time: sleep() advances now() instantly."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    async def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


class RecordingNotifier:
    def __init__(self, result=None):
        self.messages = []
        self.result = result

    def __call__(self, message):
        self.messages.append(message)
        return self.result


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def reset_package_logger():
    yield
    logging.getLogger("power_agent").handlers.clear()
    logging.getLogger("power_agent").setLevel(logging.NOTSET)
