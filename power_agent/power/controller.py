import threading
import time
from dataclasses import dataclass

from power_agent.result import ProbeResult


@dataclass(frozen=True)
class PowerActionResult:
    ok: bool
    message: str


class PowerBackend:
    """
    Interface for a machine's power control (iLO, Wake-on-LAN, etc).

    Probes answer one boolean question each and must return within a short,
    backend-enforced timeout. Errors are returned as values, never raised.
    Actuators are not idempotent; callers check state first.
    """
    name = "base"

    def probe_primary(self) -> ProbeResult:
        raise NotImplementedError

    def probe_secondary(self) -> ProbeResult:
        raise NotImplementedError

    def power_on(self) -> PowerActionResult:
        raise NotImplementedError

    def power_off(self) -> PowerActionResult:
        raise NotImplementedError


class SimulatedBackend(PowerBackend):
    """
    No hardware. Power flips after boot_seconds so the monitor has something to wait for.
    """
    name = "simulated"

    def __init__(self, boot_seconds: float = 0.0, powered: bool = False):
        self.boot_seconds = max(0.0, float(boot_seconds))
        self._lock = threading.Lock()
        self._powered = bool(powered)
        self._on_at = None

    @classmethod
    def from_config(cls, cfg: dict) -> "SimulatedBackend":
        return cls(
            boot_seconds=cfg.get("boot_seconds", 0.0),
            powered=cfg.get("powered", False),
        )

    def _is_on(self) -> bool:
        with self._lock:
            if self._on_at is not None and time.monotonic() >= self._on_at:
                self._powered = True
                self._on_at = None
            return self._powered

    def probe_primary(self) -> ProbeResult:
        return ProbeResult.ok(self._is_on())

    def probe_secondary(self) -> ProbeResult:
        return ProbeResult.ok(self._is_on())

    def power_on(self) -> PowerActionResult:
        with self._lock:
            self._on_at = time.monotonic() + self.boot_seconds
        return PowerActionResult(True, f"[SIMULATION] Power ON (boot in {self.boot_seconds:.0f}s)")

    def power_off(self) -> PowerActionResult:
        with self._lock:
            self._powered = False
            self._on_at = None
        return PowerActionResult(True, "[SIMULATION] Power OFF")
