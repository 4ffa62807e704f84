import logging

import uvicorn

from smtp_relay.api import create_app
from smtp_relay.logger import get_logger
from smtp_relay.settings import load_settings


def build_app():
    """Load settings, configure logging and return the ASGI application."""
    settings = load_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format='[%(asctime)s] [%(levelname)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
        force=True  # Force reconfiguration to avoid duplicate handlers
    )
    return settings, create_app(settings)


def main():
    settings, app = build_app()
    get_logger().info(
        "SMTP relay listening on %s:%s (allowed SMTP ports: %s)",
        settings.http_host,
        settings.http_port,
        ", ".join(str(port) for port in settings.allowed_ports),
    )
    uvicorn.run(app, host=settings.http_host, port=settings.http_port)


if __name__ == "__main__":
    main()
