from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple


@dataclass(frozen=True)
class ProbeResult:
    """
    Outcome of one probe call.
    When error is set, value carries no meaning and must not be read as "off".
    """
    value: bool
    error: Optional[str] = None

    @classmethod
    def ok(cls, value: bool) -> "ProbeResult":
        return cls(bool(value), None)

    @classmethod
    def failed(cls, error: str) -> "ProbeResult":
        return cls(False, error or "unknown error")

    @property
    def has_error(self) -> bool:
        return self.error is not None


@dataclass(frozen=True)
class StateSnapshot:
    primary: ProbeResult
    secondary: ProbeResult

    @property
    def errors(self) -> List[Tuple[str, str]]:
        out = []
        if self.primary.error is not None:
            out.append(("power", self.primary.error))
        if self.secondary.error is not None:
            out.append(("led", self.secondary.error))
        return out

    @property
    def is_on(self) -> Optional[bool]:
        # Either signal proves "on", but only when both are trustworthy.
        if self.errors:
            return None
        return self.primary.value or self.secondary.value

    def to_dict(self) -> Dict[str, Any]:
        return {
            "power": self.primary.value if self.primary.error is None else None,
            "led": self.secondary.value if self.secondary.error is None else None,
            "errors": {label: err for label, err in self.errors},
        }
