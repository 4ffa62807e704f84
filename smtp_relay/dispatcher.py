"""One-shot SMTP delivery using caller-supplied credentials.

Each call to :meth:`MailDispatcher.send_mail` opens a fresh aiosmtplib
session, authenticates, sends a single ``text/plain`` message and closes the
session. Nothing is pooled or retried.

TLS behaviour:

- ``secure=True``, or ``secure`` omitted with port 465: implicit TLS
- otherwise: plain connection upgraded with STARTTLS when the server offers it

Certificates are always validated.

Every failure after validation (connect, TLS, login, send, timeout) is
reported to the caller as the same :class:`~smtp_relay.errors.Unauthorized`
error; the underlying exception is only logged by class name.
"""

from __future__ import annotations

import asyncio
from email.message import EmailMessage
from email.utils import formatdate, make_msgid
from typing import Any, Callable, Optional

import aiosmtplib

from .errors import BadRequest, Unauthorized
from .logger import get_logger
from .models import MailEnvelope, SmtpConfig

DEFAULT_SMTP_TIMEOUT = 15.0

SmtpFactory = Callable[..., Any]


def build_message(mail: MailEnvelope) -> EmailMessage:
    """Translate an envelope into a plain-text :class:`EmailMessage`.

    Raises:
        BadRequest: ``"Invalid email headers"`` for CR/LF in a header value,
            ``"Invalid email format"`` for an address the header parser
            cannot handle (e.g. ``a@[b.co``).
    """
    msg = EmailMessage()
    try:
        msg["From"] = mail.from_
        msg["To"] = mail.to
        msg["Subject"] = mail.subject
        msg["Message-ID"] = make_msgid(domain=mail.from_.rpartition("@")[2])
    except ValueError as exc:
        # Raised by the email policy for CR/LF inside header values.
        raise BadRequest("Invalid email headers") from exc
    except Exception as exc:
        # The address parser fails with AttributeError/IndexError on some
        # inputs that still pass EMAIL_PATTERN.
        raise BadRequest("Invalid email format") from exc
    msg["Date"] = formatdate(localtime=False)
    msg.set_content(mail.body)
    return msg


class MailDispatcher:
    """Send one message per call through a dedicated SMTP session.

    Attributes:
        timeout: Seconds allowed for connect plus login, and again for the
            send itself.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_SMTP_TIMEOUT,
        smtp_factory: Optional[SmtpFactory] = None,
    ):
        """Initialize the dispatcher.

        Args:
            timeout: Per-stage timeout in seconds.
            smtp_factory: Callable returning an aiosmtplib-compatible client.
                Defaults to :class:`aiosmtplib.SMTP`; tests inject doubles here.
        """
        self.timeout = timeout
        self._smtp_factory = smtp_factory or aiosmtplib.SMTP
        self.logger = get_logger("SmtpRelay.dispatcher")

    def _create_client(self, smtp: SmtpConfig) -> Any:
        use_tls = smtp.implicit_tls
        return self._smtp_factory(
            hostname=smtp.host,
            port=smtp.port,
            use_tls=use_tls,
            # None lets aiosmtplib upgrade with STARTTLS when advertised.
            start_tls=False if use_tls else None,
            validate_certs=True,
            timeout=self.timeout,
        )

    async def _verify(self, client: Any, smtp: SmtpConfig) -> None:
        """Connect and authenticate, proving the credentials before sending."""
        await client.connect()
        await client.login(smtp.user, smtp.password.get_secret_value())

    async def _close(self, client: Any) -> None:
        if not getattr(client, "is_connected", False):
            return
        try:
            await asyncio.wait_for(client.quit(), timeout=5.0)
        except Exception:
            client.close()

    async def send_mail(self, smtp: SmtpConfig, mail: MailEnvelope) -> None:
        """Relay ``mail`` through the server described by ``smtp``.

        Both arguments must already have passed
        :func:`smtp_relay.validation.validate_send_request`.

        Raises:
            BadRequest: If the envelope cannot be encoded as message headers.
            Unauthorized: On any failure while connecting, authenticating or
                sending.
        """
        msg = build_message(mail)
        client = self._create_client(smtp)
        try:
            await asyncio.wait_for(self._verify(client, smtp), timeout=self.timeout)
            await asyncio.wait_for(client.send_message(msg), timeout=self.timeout)
        except Exception as exc:
            self.logger.warning(
                "SMTP relay via %s:%s failed (%s)",
                smtp.host,
                smtp.port,
                type(exc).__name__,
            )
            raise Unauthorized() from exc
        finally:
            await self._close(client)
        self.logger.info("Relayed message via %s:%s", smtp.host, smtp.port)
