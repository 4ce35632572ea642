import errno
import logging
import platform
import socket
import subprocess

from power_agent.result import ProbeResult

logger = logging.getLogger(__name__)

# a powered-off host on the LAN answers with these instead of a refusal
HOST_DOWN_ERRNOS = (errno.EHOSTUNREACH, errno.EHOSTDOWN)

# ping exits 1 when no reply arrived; anything else non-zero means ping itself failed
PING_NO_REPLY = 1


def _ping_command(host: str, timeout: int) -> list:
    system = platform.system().lower()
    if "darwin" in system or "mac" in system:
        # macOS -W is in milliseconds
        return ["ping", "-c", "1", "-W", str(int(timeout * 1000)), host]
    return ["ping", "-c", "1", "-W", str(timeout), host]


def ping_probe(host: str, timeout: int = 1) -> ProbeResult:
    """
    One ICMP echo to host.
    No reply is a valid "down" answer; not being able to ping at all is an error.
    """
    try:
        proc = subprocess.run(
            _ping_command(host, timeout),
            stdout=subprocess.DEVNULL,
            stderr=subprocess.PIPE,
            timeout=timeout + 2,
            text=True,
        )
    except subprocess.TimeoutExpired:
        return ProbeResult.ok(False)
    except OSError as e:
        return ProbeResult.failed(f"cannot run ping: {e}")

    if proc.returncode == 0:
        return ProbeResult.ok(True)
    if proc.returncode == PING_NO_REPLY:
        return ProbeResult.ok(False)

    detail = (proc.stderr or "").strip() or f"exit status {proc.returncode}"
    logger.debug(f"ping {host} failed: {detail}")
    return ProbeResult.failed(f"error sending ping: {detail}")


def tcp_probe(host: str, port: int, timeout: float = 1.0) -> ProbeResult:
    try:
        with socket.create_connection((host, port), timeout=timeout):
            return ProbeResult.ok(True)
    except (ConnectionRefusedError, socket.timeout):
        return ProbeResult.ok(False)
    except OSError as e:
        if e.errno in HOST_DOWN_ERRNOS:
            return ProbeResult.ok(False)
        return ProbeResult.failed(f"tcp:{port} {e}")
