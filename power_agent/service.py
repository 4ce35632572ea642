"""
Power actions shared by every front-end (CLI, HTTP API, Telegram bot).

Each action checks the current state first so a redundant request does not
touch the hardware. A successful power-on starts a startup monitor session
and returns its task; the caller decides whether to await, track or ignore it.
"""
import asyncio
import concurrent.futures
import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Coroutine, Optional

from power_agent.evaluator import evaluate
from power_agent.monitor import MonitorOutcome, Notifier, StartupMonitor, log_notifier, start_monitor
from power_agent.notify.messages import StartupMessages
from power_agent.power.controller import PowerBackend
from power_agent.result import StateSnapshot
from power_agent.schedule import ScheduleConfig

logger = logging.getLogger(__name__)


class TriggerStatus(str, Enum):
    STARTED = "STARTED"
    ALREADY_ON = "ALREADY_ON"
    ALREADY_OFF = "ALREADY_OFF"
    ERROR = "ERROR"


@dataclass(frozen=True)
class TriggerResult:
    status: TriggerStatus
    message: str
    snapshot: Optional[StateSnapshot] = None
    task: Optional["asyncio.Task[MonitorOutcome]"] = None

    @property
    def ok(self) -> bool:
        return self.status != TriggerStatus.ERROR


class PowerService:
    def __init__(self, backend: PowerBackend, schedule: ScheduleConfig = None,
                 messages: StartupMessages = None):
        self.backend = backend
        self.schedule = schedule or ScheduleConfig()
        self.messages = messages or StartupMessages()

    async def state(self) -> StateSnapshot:
        return await evaluate(self.backend)

    def _state_error(self, snapshot: StateSnapshot, action: str) -> Optional[TriggerResult]:
        if not snapshot.errors:
            return None
        for signal, error in snapshot.errors:
            logger.error(f"Failed to retrieve {signal.upper()} state: {error}")
        return TriggerResult(
            TriggerStatus.ERROR, f"❌ Oops! Something went wrong while {action} the server", snapshot
        )

    async def power_on(self, notifier: Notifier = None, name: str = "Hey",
                       monitor: bool = True) -> TriggerResult:
        # Bad monitor settings must fail before the machine is touched
        intervals = self.schedule.build() if monitor else ()

        snapshot = await self.state()
        failed = self._state_error(snapshot, "starting")
        if failed:
            return failed

        if snapshot.is_on:
            logger.info("The server is already switched on")
            return TriggerResult(TriggerStatus.ALREADY_ON, "✅ The server is already running!", snapshot)

        result = await asyncio.to_thread(self.backend.power_on)
        if not result.ok:
            logger.error(f"A problem occurred when switching on the server: {result.message}")
            return TriggerResult(
                TriggerStatus.ERROR, "❌ Oops! Something went wrong while starting the server", snapshot
            )
        logger.info(f"Server switched on ({result.message})")

        if not monitor:
            return TriggerResult(
                TriggerStatus.STARTED, "✨ The server is waking up! It'll be ready soon", snapshot
            )

        session = StartupMonitor(
            self.backend,
            intervals,
            notifier or log_notifier(),
            success_message=lambda elapsed: self.messages.success(name, elapsed),
            timeout_message=lambda: self.messages.timeout(name),
            label=name,
        )
        task = start_monitor(session)
        return TriggerResult(
            TriggerStatus.STARTED, "✨ The server is waking up! It'll be ready soon", snapshot, task
        )

    async def power_off(self) -> TriggerResult:
        snapshot = await self.state()
        failed = self._state_error(snapshot, "stopping")
        if failed:
            return failed

        if not snapshot.is_on:
            logger.info("The server is already switched off")
            return TriggerResult(TriggerStatus.ALREADY_OFF, "✅ The server is already stopped!", snapshot)

        result = await asyncio.to_thread(self.backend.power_off)
        if not result.ok:
            logger.error(f"A problem occurred when switching off the server: {result.message}")
            return TriggerResult(
                TriggerStatus.ERROR, "❌ Oops! Something went wrong while stopping the server", snapshot
            )
        logger.info(f"Server switched off ({result.message})")
        return TriggerResult(TriggerStatus.STARTED, "🛌 The server is shutting down!", snapshot)


class BackgroundLoop:
    """
    An event loop on a daemon thread, so synchronous front-ends can start
    monitor sessions that outlive the request that started them.
    """

    def __init__(self, name: str = "power-agent-loop"):
        self.loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)
        # the loop holds only weak references to tasks
        self._tasks = set()

    def _run(self):
        asyncio.set_event_loop(self.loop)
        self.loop.run_forever()

    def start(self) -> "BackgroundLoop":
        if not self._thread.is_alive():
            self._thread.start()
        return self

    def submit(self, coro: Coroutine) -> concurrent.futures.Future:
        return asyncio.run_coroutine_threadsafe(coro, self.loop)

    def run(self, coro: Coroutine, timeout: float = None):
        return self.submit(coro).result(timeout)

    @property
    def tasks(self) -> set:
        return set(self._tasks)

    def keep(self, task: Optional[asyncio.Task]):
        """Hold a detached monitor session until it finishes."""
        if task is not None:
            self.loop.call_soon_threadsafe(self._keep, task)

    def _keep(self, task: asyncio.Task):
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def stop(self):
        if self._thread.is_alive():
            self.loop.call_soon_threadsafe(self.loop.stop)
            self._thread.join(timeout=5)
        self.loop.close()
