import asyncio
import inspect
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional, Sequence, Union

from power_agent.evaluator import evaluate
from power_agent.power.controller import PowerBackend

logger = logging.getLogger(__name__)

# notify(message) -> error text or None; may be a plain function or a coroutine function
Notifier = Callable[[str], Union[Optional[str], Awaitable[Optional[str]]]]


class MonitorState(str, Enum):
    WAITING = "WAITING"
    CHECKING = "CHECKING"
    SUCCEEDED = "SUCCEEDED"
    TIMED_OUT = "TIMED_OUT"


@dataclass(frozen=True)
class MonitorOutcome:
    state: MonitorState
    elapsed: float
    rounds: int
    degraded_rounds: int
    message: str
    notify_error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.state == MonitorState.SUCCEEDED


def default_success_message(elapsed: float) -> str:
    return f"Server successfully started after {elapsed:.0f}s"


def default_timeout_message() -> str:
    return "Server did not start within the timeout period. Please check it manually"


def log_notifier(log: logging.Logger = logger, level: int = logging.INFO) -> Notifier:
    """Notifier that only writes the message to a logger."""
    def notify(message: str) -> Optional[str]:
        log.log(level, message)
        return None

    return notify


class StartupMonitor:
    """
    Watches a machine after power-on until it reports "on" or the schedule runs out.

    One instance is one session: it owns its schedule, runs once, and reports
    through the notifier exactly once. Probe errors in a round are logged and
    the session keeps going; only schedule exhaustion ends it without success.
    """

    def __init__(self, backend: PowerBackend, intervals: Sequence[float], notifier: Notifier,
                 success_message: Callable[[float], str] = default_success_message,
                 timeout_message: Callable[[], str] = default_timeout_message,
                 sleep: Callable[[float], Awaitable] = asyncio.sleep,
                 clock: Callable[[], float] = time.monotonic,
                 label: str = "monitor"):
        self.backend = backend
        self.intervals = tuple(intervals)
        self.notifier = notifier
        self.success_message = success_message
        self.timeout_message = timeout_message
        self._sleep = sleep
        self._clock = clock
        self.label = label

        self.state = MonitorState.WAITING
        self._started = False

    async def run(self) -> MonitorOutcome:
        if self._started:
            raise RuntimeError(f"[{self.label}] monitor session already ran")
        self._started = True

        start = self._clock()
        rounds = 0
        degraded = 0
        logger.info(f"[{self.label}] Monitoring server startup ({len(self.intervals)} checks)")

        for interval in self.intervals:
            self.state = MonitorState.WAITING
            logger.debug(
                f"[{self.label}] Waiting before next server check "
                f"(elapsed={self._clock() - start:.0f}s next={interval:.0f}s)"
            )
            await self._sleep(interval)

            self.state = MonitorState.CHECKING
            rounds += 1
            snapshot = await evaluate(self.backend)

            if snapshot.errors:
                degraded += 1
                for signal, error in snapshot.errors:
                    logger.error(f"[{self.label}] Failed to retrieve {signal.upper()} state during monitoring: {error}")
                continue

            if snapshot.is_on:
                elapsed = self._clock() - start
                self.state = MonitorState.SUCCEEDED
                logger.info(f"[{self.label}] Server successfully started after {elapsed:.0f}s")
                message = self._build_message(lambda: self.success_message(elapsed),
                                              lambda: default_success_message(elapsed))
                notify_error = await self._notify(message)
                return MonitorOutcome(self.state, elapsed, rounds, degraded, message, notify_error)

        elapsed = self._clock() - start
        self.state = MonitorState.TIMED_OUT
        logger.warning(f"[{self.label}] Server did not start within the timeout period ({elapsed:.0f}s)")
        message = self._build_message(self.timeout_message, default_timeout_message)
        notify_error = await self._notify(message)
        return MonitorOutcome(self.state, elapsed, rounds, degraded, message, notify_error)

    def _build_message(self, build: Callable[[], str], fallback: Callable[[], str]) -> str:
        try:
            return build()
        except Exception as e:
            logger.error(f"[{self.label}] Failed to build notification text: {e}")
            return fallback()

    async def _notify(self, message: str) -> Optional[str]:
        try:
            if inspect.iscoroutinefunction(self.notifier):
                error = await self.notifier(message)
            else:
                error = await asyncio.to_thread(self.notifier, message)
        except Exception as e:
            error = f"notifier raised: {e}"

        if error:
            logger.error(f"[{self.label}] Failed to deliver notification: {error}")
        return error


def start_monitor(monitor: StartupMonitor) -> "asyncio.Task[MonitorOutcome]":
    """Schedule a session on the running loop and hand back its task."""
    return asyncio.get_running_loop().create_task(monitor.run(), name=f"startup-monitor-{monitor.label}")
