"""Field checks applied to a ``/send-mail`` request before any SMTP traffic."""

from __future__ import annotations

import re
from typing import Any, Dict, Iterable, Tuple

from .errors import BadRequest
from .models import MailEnvelope, SendMailRequest, SmtpConfig

DEFAULT_ALLOWED_PORTS = (465, 587, 2525)

# Deliberately loose: local part, "@", domain with at least one dot.
EMAIL_PATTERN = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")


def is_valid_email(value: Any) -> bool:
    """Return ``True`` when ``value`` looks like ``local@domain.tld``."""
    if not isinstance(value, str):
        return False
    return EMAIL_PATTERN.fullmatch(value) is not None


def is_blank(value: Any) -> bool:
    """Return ``True`` for JSON values that count as absent: null, false, "" and 0."""
    if value is None or value is False or value == "":
        return True
    return isinstance(value, (int, float)) and value == 0


def require_sections(data: Dict[str, Any]) -> Dict[str, Any]:
    """Check that the raw payload carries both sections before schema parsing.

    A section that is present but not a JSON object is read as empty, so it
    fails the credential or mail-field checks instead of the schema.

    Raises:
        BadRequest: ``"smtp and mail are required"`` when either is blank.
    """
    if is_blank(data.get("smtp")) or is_blank(data.get("mail")):
        raise BadRequest("smtp and mail are required")
    return {key: data[key] if isinstance(data[key], dict) else {} for key in ("smtp", "mail")}


def is_allowed_port(port: Any, allowed_ports: Iterable[int]) -> bool:
    """Return ``True`` when ``port`` is a number equal to an allowed port.

    Strings and booleans never match, ``587.0`` matches ``587``.
    """
    if isinstance(port, bool) or not isinstance(port, (int, float)):
        return False
    return port in tuple(allowed_ports)


def validate_send_request(
    request: SendMailRequest,
    allowed_ports: Iterable[int] = DEFAULT_ALLOWED_PORTS,
) -> Tuple[SmtpConfig, MailEnvelope]:
    """Check a parsed request and return its SMTP config and envelope.

    Checks run in a fixed order and the first failure wins:

    1. both ``smtp`` and ``mail`` are present
    2. host, port, user and pass are all non-empty
    3. the port is in ``allowed_ports``
    4. from, to, subject and body are all non-empty
    5. from and to match :data:`EMAIL_PATTERN`

    The returned config always carries an integer port.

    Raises:
        BadRequest: with the reason string of the first failing check.
    """
    smtp, mail = request.smtp, request.mail
    if smtp is None or mail is None:
        raise BadRequest("smtp and mail are required")

    password = smtp.password.get_secret_value() if smtp.password is not None else None
    if not smtp.host or is_blank(smtp.port) or not smtp.user or not password:
        raise BadRequest("Incomplete SMTP credentials")

    if not is_allowed_port(smtp.port, allowed_ports):
        raise BadRequest("SMTP port not allowed")

    if not mail.from_ or not mail.to or not mail.subject or not mail.body:
        raise BadRequest("Missing email fields")

    if not is_valid_email(mail.from_) or not is_valid_email(mail.to):
        raise BadRequest("Invalid email format")

    return smtp.model_copy(update={"port": int(smtp.port)}), mail
