import textwrap

import pytest

from power_agent.config import ConfigValidationError, ConfigValidator, load_config
from power_agent.power.controller import SimulatedBackend
from power_agent.power.ilo import IloBackend
from power_agent.power.registry import BACKENDS, backend_from_config, build_backend
from power_agent.power.wakeonlan import WakeOnLanBackend


def write(tmp_path, body):
    path = tmp_path / "power_agent.yaml"
    path.write_text(textwrap.dedent(body))
    return str(path)


def test_defaults_are_injected(tmp_path):
    cfg = load_config(write(tmp_path, """
        backend:
          name: simulated
    """))

    assert cfg["monitor"]["timeout_seconds"] == 180
    assert cfg["monitor"]["factor"] == 1.5
    assert cfg["logging"]["level"] == "INFO"
    assert cfg["api"]["port"] == 8080
    assert cfg["notifications"]["telegram"]["enabled"] is False


def test_user_values_override_defaults(tmp_path):
    cfg = load_config(write(tmp_path, """
        backend:
          name: wol
          wol: {hostname: server.lan, mac: "aa:bb:cc:dd:ee:ff"}
        monitor:
          timeout_seconds: 60
    """))

    assert cfg["monitor"]["timeout_seconds"] == 60
    assert cfg["monitor"]["min_interval_seconds"] == 5


def test_empty_sections_keep_defaults(tmp_path):
    cfg = load_config(write(tmp_path, """
        backend:
          name: simulated
        monitor:
        logging:
          rotation:
        notifications:
          telegram:
    """))

    assert cfg["monitor"]["timeout_seconds"] == 180
    assert cfg["logging"]["rotation"] == ConfigValidator.DEFAULTS["logging"]["rotation"]
    assert cfg["notifications"]["telegram"]["enabled"] is False


def test_missing_file():
    with pytest.raises(ConfigValidationError, match="not found"):
        load_config("/nonexistent/power_agent.yaml")


def test_invalid_yaml(tmp_path):
    with pytest.raises(ConfigValidationError, match="Invalid YAML"):
        load_config(write(tmp_path, "backend: [unclosed\n"))


@pytest.mark.parametrize("cfg,match", [
    ({}, "backend"),
    ({"backend": {"name": ""}}, "backend.name"),
    ({"backend": {"name": "ilo", "ilo": "nope"}}, "backend.ilo"),
    ({"backend": {"name": "simulated"}, "monitor": {"timeout_seconds": 0}}, "timeout_seconds"),
    ({"backend": {"name": "simulated"}, "monitor": {"min_interval_seconds": 50}}, "max_interval_seconds"),
    ({"backend": {"name": "simulated"}, "logging": {"level": "LOUD"}}, "logging.level"),
    ({"backend": {"name": "simulated"}, "api": {"port": 70000}}, "api.port"),
    ({"backend": {"name": "simulated"}, "notifications": {"telegram": {"enabled": True}}}, "bot_token"),
    ({"backend": {"name": "simulated"}, "monitor": 5}, "monitor must be a mapping"),
    ({"backend": {"name": "simulated"}, "logging": {"rotation": "daily"}}, "logging.rotation must be a mapping"),
])
def test_invalid_configs(cfg, match):
    with pytest.raises(ConfigValidationError, match=match):
        ConfigValidator.from_dict(cfg)


def test_registry_table_is_explicit():
    assert BACKENDS == {"ilo": IloBackend, "wol": WakeOnLanBackend, "simulated": SimulatedBackend}


def test_unknown_backend_lists_available():
    with pytest.raises(ConfigValidationError, match="ilo, simulated, wol"):
        build_backend("ipmi", {})


def test_missing_backend_keys():
    with pytest.raises(ConfigValidationError, match="password"):
        build_backend("ilo", {"hostname": "h", "url": "u", "username": "admin"})


def test_build_ilo_backend():
    backend = build_backend("ilo", {"hostname": "h", "url": "ilo.lan", "username": "a", "password": "b"})

    assert isinstance(backend, IloBackend)
    assert backend.client.base_url == "https://ilo.lan/redfish/v1/"


def test_backend_name_override():
    cfg = ConfigValidator.from_dict({
        "backend": {"name": "ilo", "ilo": {}, "simulated": {"boot_seconds": 3}},
    })

    backend = backend_from_config(cfg, "simulated")

    assert isinstance(backend, SimulatedBackend)
    assert backend.boot_seconds == 3.0
