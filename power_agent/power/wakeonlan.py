import logging
import re
import socket

from power_agent.power.controller import PowerActionResult, PowerBackend
from power_agent.probes import ping_probe, tcp_probe
from power_agent.result import ProbeResult

logger = logging.getLogger(__name__)

WOL_PORT = 9
_MAC_RE = re.compile(r"^[0-9a-f]{12}$", re.I)


def magic_packet(mac: str) -> bytes:
    digits = re.sub(r"[:\-.]", "", mac.strip())
    if not _MAC_RE.match(digits):
        raise ValueError(f"invalid MAC address: {mac!r}")
    return b"\xff" * 6 + bytes.fromhex(digits) * 16


class WakeOnLanBackend(PowerBackend):
    """
    Wake-on-LAN: can only switch on.
    Both signals come from the host itself (ping, or a TCP port when configured).
    """
    name = "wol"
    REQUIRED = ("hostname", "mac")

    def __init__(self, hostname: str, mac: str, broadcast: str = "255.255.255.255",
                 tcp_port: int = None):
        self.hostname = hostname
        self.mac = mac
        self.broadcast = broadcast
        self.tcp_port = tcp_port

    @classmethod
    def from_config(cls, cfg: dict) -> "WakeOnLanBackend":
        port = cfg.get("tcp_port")
        return cls(
            cfg["hostname"],
            cfg["mac"],
            broadcast=cfg.get("broadcast", "255.255.255.255"),
            tcp_port=int(port) if port else None,
        )

    def probe_primary(self) -> ProbeResult:
        return ping_probe(self.hostname)

    def probe_secondary(self) -> ProbeResult:
        if self.tcp_port:
            return tcp_probe(self.hostname, self.tcp_port, timeout=1.0)
        return ping_probe(self.hostname)

    def power_on(self) -> PowerActionResult:
        try:
            packet = magic_packet(self.mac)
        except ValueError as e:
            return PowerActionResult(False, f"error creating the magic packet: {e}")

        try:
            with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
                sock.sendto(packet, (self.broadcast, WOL_PORT))
        except OSError as e:
            logger.error(f"Magic packet to {self.mac} failed: {e}")
            return PowerActionResult(False, f"error sending the magic packet: {e}")

        return PowerActionResult(True, f"Magic packet sent to {self.mac}")

    def power_off(self) -> PowerActionResult:
        return PowerActionResult(False, "Wake-on-LAN cannot power off a machine")
