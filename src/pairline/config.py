"""Configuration management for pairline."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

import yaml


DEFAULT_PHONE_PATTERN = r"^[0-9]{9}$"


@dataclass
class PairingConfig:
    """Pairing code issuance and retention settings."""

    code_length: int = 8
    code_ttl: float = 600.0  # 10 minutes
    sweep_interval: float = 60.0
    session_prefix: str = "PAIRLINE"
    country_code: str = "+254"
    phone_pattern: str = DEFAULT_PHONE_PATTERN
    retention: str = "keep"  # keep | purge, for linked/used sessions
    terminal_retention: float = 3600.0  # seconds a kept session survives the sweep
    reuse_pending_codes: bool = False


@dataclass
class LinkConfig:
    """Device-link client settings."""

    client: str | None = None  # "package.module:factory"
    auth_dir: str = "~/.config/pairline/auth"
    reconnect_delay: float = 10.0
    init_retry_delay: float = 15.0
    max_retries: int | None = None  # None retries forever
    reset_credentials_on_start: bool = False
    print_qr_in_terminal: bool = True


@dataclass
class RateLimitConfig:
    """Per-IP request limits on the issuing and /api routes."""

    max_requests: int = 100
    window_seconds: int = 900  # 15 minutes


@dataclass
class Config:
    """Service configuration."""

    port: int = 5000
    bind_address: str = "0.0.0.0"
    log_level: str = "INFO"
    log_file: str | None = None
    link_log_level: str | None = None
    pairing: PairingConfig = field(default_factory=PairingConfig)
    link: LinkConfig = field(default_factory=LinkConfig)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)


def get_config_path(custom_path: Path | None = None) -> Path:
    """Get the configuration file path.

    Args:
        custom_path: Override path. If None, returns default.

    Returns:
        Path to config file.
    """
    if custom_path is not None:
        return custom_path
    return Path.home() / ".config" / "pairline" / "config.yaml"


def _default_file_reader(path: Path) -> dict[str, Any] | None:
    """Default file reader that loads YAML from disk."""
    if not path.exists():
        return None
    try:
        content = path.read_text()
        if not content.strip():
            return None
        return yaml.safe_load(content)
    except yaml.YAMLError:
        return None


def load_config(
    path: Path | None = None,
    file_reader: Callable[[Path], dict[str, Any] | None] | None = None,
) -> Config:
    """Load configuration from file.

    Args:
        path: Path to config file. If None, uses default path.
        file_reader: Injectable file reader for testing.

    Returns:
        Config object with values from file or defaults.
    """
    config_path = get_config_path(path)
    reader = file_reader or _default_file_reader

    data = reader(config_path)

    if not isinstance(data, dict):
        return Config()

    pairing_data = data.get("pairing") or {}
    pairing_config = PairingConfig(
        code_length=pairing_data.get("code_length", PairingConfig.code_length),
        code_ttl=pairing_data.get("code_ttl", PairingConfig.code_ttl),
        sweep_interval=pairing_data.get(
            "sweep_interval", PairingConfig.sweep_interval
        ),
        session_prefix=pairing_data.get(
            "session_prefix", PairingConfig.session_prefix
        ),
        country_code=pairing_data.get("country_code", PairingConfig.country_code),
        phone_pattern=pairing_data.get("phone_pattern", PairingConfig.phone_pattern),
        retention=pairing_data.get("retention", PairingConfig.retention),
        terminal_retention=pairing_data.get(
            "terminal_retention", PairingConfig.terminal_retention
        ),
        reuse_pending_codes=pairing_data.get(
            "reuse_pending_codes", PairingConfig.reuse_pending_codes
        ),
    )

    link_data = data.get("link") or {}
    link_config = LinkConfig(
        client=link_data.get("client", LinkConfig.client),
        auth_dir=link_data.get("auth_dir", LinkConfig.auth_dir),
        reconnect_delay=link_data.get("reconnect_delay", LinkConfig.reconnect_delay),
        init_retry_delay=link_data.get(
            "init_retry_delay", LinkConfig.init_retry_delay
        ),
        max_retries=link_data.get("max_retries", LinkConfig.max_retries),
        reset_credentials_on_start=link_data.get(
            "reset_credentials_on_start", LinkConfig.reset_credentials_on_start
        ),
        print_qr_in_terminal=link_data.get(
            "print_qr_in_terminal", LinkConfig.print_qr_in_terminal
        ),
    )

    rate_data = data.get("rate_limit") or {}
    rate_config = RateLimitConfig(
        max_requests=rate_data.get("max_requests", RateLimitConfig.max_requests),
        window_seconds=rate_data.get(
            "window_seconds", RateLimitConfig.window_seconds
        ),
    )

    return Config(
        port=data.get("port", Config.port),
        bind_address=data.get("bind_address", Config.bind_address),
        log_level=data.get("log_level", Config.log_level),
        log_file=data.get("log_file", Config.log_file),
        link_log_level=data.get("link_log_level", Config.link_log_level),
        pairing=pairing_config,
        link=link_config,
        rate_limit=rate_config,
    )
