"""Runtime settings loaded from ``config.ini`` with environment fallbacks."""

from __future__ import annotations

import configparser
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Tuple

from .middleware import DEFAULT_MAX_BODY_BYTES
from .rate_limit import DEFAULT_MAX_REQUESTS, DEFAULT_WINDOW_SECONDS
from .dispatcher import DEFAULT_SMTP_TIMEOUT
from .validation import DEFAULT_ALLOWED_PORTS

ENV_PREFIX = "SMTP_RELAY_"


@dataclass
class RelaySettings:
    """Every tunable of the relay, with the production defaults."""
    http_host: str = "0.0.0.0"
    http_port: int = 3000
    cors_origins: Tuple[str, ...] = ("*",)
    trust_proxy: bool = False
    max_body_bytes: int = DEFAULT_MAX_BODY_BYTES
    rate_limit_window_seconds: float = DEFAULT_WINDOW_SECONDS
    rate_limit_max_requests: int = DEFAULT_MAX_REQUESTS
    allowed_ports: Tuple[int, ...] = DEFAULT_ALLOWED_PORTS
    smtp_timeout: float = DEFAULT_SMTP_TIMEOUT
    log_level: str = "INFO"


def _split(value: str) -> list[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


def load_settings(environ: Optional[Mapping[str, str]] = None) -> RelaySettings:
    """
    Load configuration from an INI file (default: config.ini) with environment variables as fallbacks.

    Environment variables (all prefixed with SMTP_RELAY_):
      SMTP_RELAY_CONFIG - Path to config.ini file (default: config.ini)
      SMTP_RELAY_LOG_LEVEL - Logging level (default: INFO)
      SMTP_RELAY_HOST - Server host (default: 0.0.0.0)
      SMTP_RELAY_PORT - Server port (default: $PORT, then 3000)
      SMTP_RELAY_CORS_ORIGINS - Comma separated allowed origins (default: *)
      SMTP_RELAY_TRUST_PROXY - Use X-Forwarded-For as client identity (default: False)
      SMTP_RELAY_MAX_BODY_BYTES - Request body ceiling (default: 102400)
      SMTP_RELAY_RATE_LIMIT_WINDOW - Rate limit window in seconds (default: 900)
      SMTP_RELAY_RATE_LIMIT_MAX - Requests per window and client (default: 20)
      SMTP_RELAY_ALLOWED_PORTS - Comma separated SMTP ports (default: 465,587,2525)
      SMTP_RELAY_SMTP_TIMEOUT - SMTP stage timeout in seconds (default: 15)

    Config file sections/keys:
      [server] host, port, cors_origins, trust_proxy, max_body_bytes
      [rate_limit] window_seconds, max_requests
      [smtp] allowed_ports, timeout
      [logging] level
    """
    env = os.environ if environ is None else environ
    config_path = Path(env.get(f"{ENV_PREFIX}CONFIG", "config.ini"))
    parser = configparser.ConfigParser()
    parser.read(config_path)

    def get(section: str, option: str, fallback: str | None = None) -> str | None:
        if parser.has_option(section, option):
            return parser.get(section, option)
        return fallback

    def get_int(section: str, option: str, fallback: str | None = None, default: int | None = None) -> int | None:
        value = get(section, option, fallback)
        if value is None:
            return default
        return int(value)

    def get_bool(section: str, option: str, fallback: str | None = None, default: bool | None = None) -> bool | None:
        value = get(section, option, fallback)
        if value is None:
            return default
        normalized = str(value).strip().lower()
        if normalized in {"1", "true", "yes", "on"}:
            return True
        if normalized in {"0", "false", "no", "off"}:
            return False
        return default

    def get_float(section: str, option: str, fallback: str | None = None, default: float | None = None) -> float | None:
        value = get(section, option, fallback)
        if value is None:
            return default
        return float(value)

    defaults = RelaySettings()
    origins = get("server", "cors_origins", env.get(f"{ENV_PREFIX}CORS_ORIGINS"))
    ports = get("smtp", "allowed_ports", env.get(f"{ENV_PREFIX}ALLOWED_PORTS"))

    settings = RelaySettings(
        http_host=get("server", "host", env.get(f"{ENV_PREFIX}HOST")) or defaults.http_host,
        http_port=get_int(
            "server", "port", env.get(f"{ENV_PREFIX}PORT", env.get("PORT")), default=defaults.http_port
        ),
        cors_origins=tuple(_split(origins)) if origins else defaults.cors_origins,
        trust_proxy=get_bool("server", "trust_proxy", env.get(f"{ENV_PREFIX}TRUST_PROXY"), default=False),
        max_body_bytes=get_int(
            "server", "max_body_bytes", env.get(f"{ENV_PREFIX}MAX_BODY_BYTES"), default=defaults.max_body_bytes
        ),
        rate_limit_window_seconds=get_float(
            "rate_limit",
            "window_seconds",
            env.get(f"{ENV_PREFIX}RATE_LIMIT_WINDOW"),
            default=defaults.rate_limit_window_seconds,
        ),
        rate_limit_max_requests=get_int(
            "rate_limit",
            "max_requests",
            env.get(f"{ENV_PREFIX}RATE_LIMIT_MAX"),
            default=defaults.rate_limit_max_requests,
        ),
        allowed_ports=tuple(int(port) for port in _split(ports)) if ports else defaults.allowed_ports,
        smtp_timeout=get_float(
            "smtp", "timeout", env.get(f"{ENV_PREFIX}SMTP_TIMEOUT"), default=defaults.smtp_timeout
        ),
        log_level=(get("logging", "level", env.get(f"{ENV_PREFIX}LOG_LEVEL")) or defaults.log_level).upper(),
    )

    if not settings.allowed_ports:
        raise ValueError("allowed_ports must list at least one port")
    return settings
