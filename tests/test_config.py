"""Tests for config module."""

from pathlib import Path
from unittest.mock import Mock

import yaml

from pairline.config import (
    Config,
    LinkConfig,
    PairingConfig,
    RateLimitConfig,
    get_config_path,
    load_config,
)


class TestConfigDefaults:
    """Test default configuration values."""

    def test_default_config_values(self):
        """Config has sensible defaults when no file exists."""
        config = Config()

        assert config.port == 5000
        assert config.bind_address == "0.0.0.0"
        assert config.log_level == "INFO"
        assert config.log_file is None
        assert config.link_log_level is None

    def test_default_pairing_values(self):
        pairing = PairingConfig()

        assert pairing.code_length == 8
        assert pairing.code_ttl == 600.0
        assert pairing.sweep_interval == 60.0
        assert pairing.country_code == "+254"
        assert pairing.retention == "keep"
        assert pairing.reuse_pending_codes is False

    def test_default_link_values(self):
        link = LinkConfig()

        assert link.client is None
        assert link.reconnect_delay == 10.0
        assert link.init_retry_delay == 15.0
        assert link.max_retries is None
        assert link.print_qr_in_terminal is True

    def test_default_rate_limit(self):
        assert RateLimitConfig().max_requests == 100
        assert RateLimitConfig().window_seconds == 900


class TestGetConfigPath:
    """Test config path resolution."""

    def test_get_config_path_default(self):
        """Default config path is ~/.config/pairline/config.yaml."""
        assert get_config_path() == Path.home() / ".config" / "pairline" / "config.yaml"

    def test_get_config_path_custom(self):
        custom = Path("/custom/config.yaml")
        assert get_config_path(custom) == custom


class TestLoadConfig:
    """Test config loading."""

    def test_load_config_no_file_returns_defaults(self, tmp_path):
        config = load_config(tmp_path / "nonexistent.yaml")

        assert config.port == 5000
        assert config.pairing.code_ttl == 600.0

    def test_load_config_from_file(self, tmp_path):
        """Config loads values from YAML file."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text(
            yaml.dump(
                {
                    "port": 8080,
                    "log_level": "DEBUG",
                    "link_log_level": "WARNING",
                    "pairing": {"code_ttl": 120, "retention": "purge"},
                    "link": {
                        "client": "mybridge.client:create",
                        "max_retries": 5,
                        "print_qr_in_terminal": False,
                    },
                    "rate_limit": {"max_requests": 10},
                }
            )
        )

        config = load_config(config_file)

        assert config.port == 8080
        assert config.log_level == "DEBUG"
        assert config.link_log_level == "WARNING"
        assert config.pairing.code_ttl == 120
        assert config.pairing.retention == "purge"
        assert config.pairing.code_length == 8
        assert config.link.client == "mybridge.client:create"
        assert config.link.max_retries == 5
        assert config.link.print_qr_in_terminal is False
        assert config.link.reconnect_delay == 10.0
        assert config.rate_limit.max_requests == 10
        assert config.rate_limit.window_seconds == 900

    def test_load_config_empty_file(self, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("")

        assert load_config(config_file) == Config()

    def test_load_config_invalid_yaml(self, tmp_path):
        """Invalid YAML falls back to defaults."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text("port: [unclosed")

        assert load_config(config_file).port == 5000

    def test_load_config_non_mapping(self, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("- just\n- a list\n")

        assert load_config(config_file) == Config()

    def test_load_config_null_sections(self):
        """Empty sections use their defaults."""
        reader = Mock(return_value={"pairing": None, "link": None})
        config = load_config(Path("/fake.yaml"), file_reader=reader)

        assert config.pairing == PairingConfig()
        assert config.link == LinkConfig()

    def test_load_config_uses_injected_reader(self):
        reader = Mock(return_value={"port": 9000})

        config = load_config(Path("/fake.yaml"), file_reader=reader)

        reader.assert_called_once_with(Path("/fake.yaml"))
        assert config.port == 9000
