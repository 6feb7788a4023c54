"""
Configuration loading tests.
"""

from pathlib import Path

import pytest
import yaml

from wristlink.common import config as config_module
from wristlink.common.config import LinkConfig, load_config_file, load_link_config
from wristlink.common.exceptions import ConfigError


class TestLoadLinkConfig:

    def test_defaults(self):
        config = load_link_config(None)

        assert config.device.name == "wearable"
        assert config.transport.request_timeout_s == 5.0
        assert config.transport.initially_reachable is True
        assert config.service.health_port == 8090
        assert config.service.log_format == "json"
        assert config.host.system_enabled is False
        assert config == LinkConfig()

    def test_full_config(self):
        config = load_link_config({
            "device": {"name": "watch-1", "host_name": "pixel"},
            "transport": {"request_timeout_s": 2, "initially_reachable": False, "activation_delay_s": 0.5},
            "service": {"health_host": "0.0.0.0", "health_port": 9000, "log_level": "debug", "log_format": "TEXT"},
            "host": {"system_enabled": True},
        }, source="test.yaml")

        assert config.device.host_name == "pixel"
        assert config.transport.request_timeout_s == 2.0
        assert config.transport.activation_delay_s == 0.5
        assert config.service.log_level == "DEBUG"
        assert config.service.log_format == "text"
        assert config.host.system_enabled is True
        assert config.source == "test.yaml"

    def test_empty_section_uses_defaults(self):
        assert load_link_config({"device": None}).device.name == "wearable"

    @pytest.mark.parametrize("data, key", [
        ({"transport": {"request_timeout_s": "fast"}}, "request_timeout_s"),
        ({"transport": {"request_timeout_s": -1}}, "request_timeout_s"),
        ({"transport": {"request_timeout_s": 0}}, "request_timeout_s"),
        ({"transport": {"activation_delay_s": True}}, "activation_delay_s"),
        ({"transport": {"initially_reachable": "yes"}}, "initially_reachable"),
        ({"service": {"log_level": "LOUD"}}, "log_level"),
        ({"service": {"log_format": "xml"}}, "log_format"),
        ({"service": {"health_port": 70000}}, "health_port"),
        ({"service": {"health_port": "8090"}}, "health_port"),
        ({"host": {"system_enabled": 1}}, "system_enabled"),
        ({"device": ["watch"]}, "device"),
    ])
    def test_invalid_values(self, data, key):
        with pytest.raises(ConfigError) as exc_info:
            load_link_config(data)

        assert exc_info.value.key == key
        assert exc_info.value.recoverable is False
        assert exc_info.value.message.startswith("Config Error: ")

    def test_top_level_must_be_mapping(self):
        with pytest.raises(ConfigError):
            load_link_config(["device"])

    def test_to_dict(self):
        data = LinkConfig().to_dict()
        assert data["transport"]["request_timeout_s"] == 5.0
        assert data["source"] == ""


class TestLoadConfigFile:

    def test_explicit_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({"device": {"name": "watch-2"}}))

        config = load_config_file(path)

        assert config.device.name == "watch-2"
        assert config.source == str(path)

    def test_explicit_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="config file not found"):
            load_config_file(tmp_path / "missing.yaml")

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("device: [unclosed\n")

        with pytest.raises(ConfigError, match="error parsing"):
            load_config_file(path)

    def test_empty_file_uses_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")

        assert load_config_file(path).device.name == "wearable"

    def test_search_path(self, tmp_path, monkeypatch):
        found = tmp_path / "config.yaml"
        found.write_text("host:\n  system_enabled: true\n")
        monkeypatch.setattr(config_module, "CONFIG_SEARCH_PATHS", [tmp_path / "nope.yaml", found])

        config = load_config_file()

        assert config.host.system_enabled is True
        assert config.source == str(found)

    def test_nothing_found_uses_defaults(self, tmp_path, monkeypatch):
        monkeypatch.setattr(config_module, "CONFIG_SEARCH_PATHS", [tmp_path / "nope.yaml"])

        config = load_config_file()

        assert config == LinkConfig()

    def test_example_config_is_valid(self):
        example = Path(__file__).resolve().parent.parent / "config.example.yaml"
        config = load_config_file(example)

        assert config.service.health_port == 8090
