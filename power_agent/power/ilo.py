import logging
from urllib.parse import urlsplit

import requests
import urllib3

from power_agent.power.controller import PowerActionResult, PowerBackend
from power_agent.probes import ping_probe
from power_agent.result import ProbeResult

logger = logging.getLogger(__name__)

# iLO ships self-signed certificates
urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

SYSTEM_PATH = "Systems/1/"
RESET_ACTION_PATH = "Systems/1/Actions/ComputerSystem.Reset/"

POWER_STATE_ON = "On"


class IloError(Exception):
    pass


def redfish_base_url(url: str) -> str:
    """Force https and append the Redfish service root."""
    parts = urlsplit(url if "//" in url else f"//{url}")
    if not parts.netloc:
        raise IloError(f"invalid iLO url: {url!r}")
    path = parts.path.rstrip("/")
    return f"https://{parts.netloc}{path}/redfish/v1/"


class IloClient:
    def __init__(self, url: str, username: str, password: str, timeout: float = 3.0,
                 session: requests.Session = None):
        self.base_url = redfish_base_url(url)
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.auth = (username, password)
        self.session.verify = False

    def power_state(self) -> str:
        try:
            resp = self.session.get(self.base_url + SYSTEM_PATH, timeout=self.timeout)
        except requests.RequestException as e:
            raise IloError(f"error sending the request: {e}") from e

        if resp.status_code != 200:
            raise IloError(
                f"error retrieving server power status (StatusCode: {resp.status_code}, Body: {resp.text})"
            )
        try:
            return resp.json()["PowerState"]
        except (ValueError, KeyError, TypeError) as e:
            raise IloError(f"error decoding the JSON response: {e}") from e

    def push_power_button(self) -> None:
        try:
            resp = self.session.post(
                self.base_url + RESET_ACTION_PATH,
                json={"ResetType": "PushPowerButton"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise IloError(f"error sending the request: {e}") from e

        if resp.status_code != 200:
            raise IloError(
                f"error pushing the power button (StatusCode: {resp.status_code}, Body: {resp.text})"
            )


class IloBackend(PowerBackend):
    """
    HPE iLO over Redfish.
    Primary signal is the reported PowerState, secondary is ICMP reachability of the host OS.
    """
    name = "ilo"
    REQUIRED = ("hostname", "url", "username", "password")

    def __init__(self, hostname: str, client: IloClient):
        self.hostname = hostname
        self.client = client

    @classmethod
    def from_config(cls, cfg: dict) -> "IloBackend":
        client = IloClient(
            cfg["url"],
            cfg["username"],
            cfg["password"],
            timeout=float(cfg.get("timeout_seconds", 3.0)),
        )
        return cls(cfg["hostname"], client)

    def probe_primary(self) -> ProbeResult:
        try:
            return ProbeResult.ok(self.client.power_state() == POWER_STATE_ON)
        except IloError as e:
            return ProbeResult.failed(str(e))

    def probe_secondary(self) -> ProbeResult:
        return ping_probe(self.hostname)

    def _push(self, action: str) -> PowerActionResult:
        try:
            self.client.push_power_button()
        except IloError as e:
            logger.error(f"iLO power {action} failed: {e}")
            return PowerActionResult(False, str(e))
        return PowerActionResult(True, f"Pushed power button ({action})")

    def power_on(self) -> PowerActionResult:
        return self._push("on")

    def power_off(self) -> PowerActionResult:
        return self._push("off")
