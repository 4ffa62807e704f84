"""Logging helpers for the SMTP relay."""

import logging

def get_logger(name: str = "SmtpRelay") -> logging.Logger:
    """Return a :class:`logging.Logger` for the relay.

    Handlers and levels are configured once through ``logging.basicConfig()``
    in ``main.py``.
    """
    return logging.getLogger(name)
