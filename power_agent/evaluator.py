import asyncio
import logging
from typing import Callable

from power_agent.power.controller import PowerBackend
from power_agent.result import ProbeResult, StateSnapshot

logger = logging.getLogger(__name__)


async def _run_probe(probe: Callable[[], ProbeResult]) -> ProbeResult:
    try:
        result = await asyncio.to_thread(probe)
    except Exception as e:
        # A probe that raises still yields a result for this round
        logger.exception(f"Probe {getattr(probe, '__name__', probe)} raised")
        return ProbeResult.failed(f"probe raised: {e}")
    if not isinstance(result, ProbeResult):
        return ProbeResult.failed(f"probe returned {type(result).__name__}, expected ProbeResult")
    return result


async def evaluate(backend: PowerBackend) -> StateSnapshot:
    """
    Query both signals of a backend at the same time and wait for both.

    Each probe is called exactly once. No timeout is applied here;
    backends bound their own calls.
    """
    primary, secondary = await asyncio.gather(
        _run_probe(backend.probe_primary),
        _run_probe(backend.probe_secondary),
    )
    return StateSnapshot(primary, secondary)


def read_state(backend: PowerBackend) -> StateSnapshot:
    """Blocking one-shot state query for callers outside an event loop."""
    return asyncio.run(evaluate(backend))
