import pytest

from smtp_relay.settings import RelaySettings, load_settings


def _env(tmp_path, **values):
    env = {"SMTP_RELAY_CONFIG": str(tmp_path / "missing.ini")}
    env.update(values)
    return env


def test_defaults_without_config(tmp_path):
    settings = load_settings(_env(tmp_path))
    assert settings == RelaySettings()
    assert settings.http_port == 3000
    assert settings.allowed_ports == (465, 587, 2525)
    assert settings.rate_limit_max_requests == 20
    assert settings.rate_limit_window_seconds == 900
    assert settings.max_body_bytes == 100 * 1024
    assert settings.cors_origins == ("*",)


def test_environment_overrides(tmp_path):
    settings = load_settings(_env(
        tmp_path,
        SMTP_RELAY_PORT="8080",
        SMTP_RELAY_ALLOWED_PORTS="465, 587, 2525, 3000",
        SMTP_RELAY_RATE_LIMIT_MAX="5",
        SMTP_RELAY_RATE_LIMIT_WINDOW="60",
        SMTP_RELAY_TRUST_PROXY="yes",
        SMTP_RELAY_CORS_ORIGINS="https://a.example,https://b.example",
        SMTP_RELAY_LOG_LEVEL="debug",
    ))
    assert settings.http_port == 8080
    assert settings.allowed_ports == (465, 587, 2525, 3000)
    assert settings.rate_limit_max_requests == 5
    assert settings.rate_limit_window_seconds == 60.0
    assert settings.trust_proxy is True
    assert settings.cors_origins == ("https://a.example", "https://b.example")
    assert settings.log_level == "DEBUG"


def test_plain_port_variable_is_honoured(tmp_path):
    assert load_settings(_env(tmp_path, PORT="4000")).http_port == 4000
    assert load_settings(_env(tmp_path, PORT="4000", SMTP_RELAY_PORT="5000")).http_port == 5000


def test_config_file_wins_over_environment(tmp_path):
    config = tmp_path / "config.ini"
    config.write_text(
        "[server]\n"
        "port = 9000\n"
        "max_body_bytes = 2048\n"
        "[rate_limit]\n"
        "max_requests = 3\n"
        "[smtp]\n"
        "allowed_ports = 587\n"
        "timeout = 2.5\n"
    )
    settings = load_settings({"SMTP_RELAY_CONFIG": str(config), "SMTP_RELAY_PORT": "8080"})
    assert settings.http_port == 9000
    assert settings.max_body_bytes == 2048
    assert settings.rate_limit_max_requests == 3
    assert settings.allowed_ports == (587,)
    assert settings.smtp_timeout == 2.5


def test_empty_port_list_is_rejected(tmp_path):
    with pytest.raises(ValueError):
        load_settings(_env(tmp_path, SMTP_RELAY_ALLOWED_PORTS=","))
