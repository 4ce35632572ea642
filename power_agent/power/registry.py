from typing import Dict, Type

from power_agent.config import ConfigValidationError
from power_agent.power.controller import PowerBackend, SimulatedBackend
from power_agent.power.ilo import IloBackend, IloError
from power_agent.power.wakeonlan import WakeOnLanBackend

BACKENDS: Dict[str, Type[PowerBackend]] = {
    IloBackend.name: IloBackend,
    WakeOnLanBackend.name: WakeOnLanBackend,
    SimulatedBackend.name: SimulatedBackend,
}


def build_backend(name: str, section: dict, backends: Dict[str, Type[PowerBackend]] = BACKENDS) -> PowerBackend:
    """Resolve a backend by name and construct it from its config section."""
    backend_cls = backends.get(name)
    if backend_cls is None:
        available = ", ".join(sorted(backends))
        raise ConfigValidationError(
            f"Can't find the {name!r} backend among the available backends ({available})"
        )

    section = section or {}
    missing = [key for key in getattr(backend_cls, "REQUIRED", ()) if not section.get(key)]
    if missing:
        raise ConfigValidationError(
            f"error validating {name!r} backend configuration: missing {', '.join(missing)}"
        )

    try:
        return backend_cls.from_config(section)
    except (IloError, ValueError, TypeError) as e:
        raise ConfigValidationError(f"error creating {name!r} backend: {e}") from e


def backend_from_config(cfg: dict, name: str = None) -> PowerBackend:
    name = name or cfg["backend"]["name"]
    return build_backend(name, cfg["backend"].get(name))
