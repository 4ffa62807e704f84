"""Pydantic schemas for the ``/send-mail`` payload and its responses.

Every field of the request models is optional at the schema level: presence
and content checks live in :mod:`smtp_relay.validation` so that each failure
is reported with its own reason string instead of a generic 422.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr, StrictBool


class SmtpConfig(BaseModel):
    """Caller-supplied SMTP server and credentials."""
    model_config = ConfigDict(populate_by_name=True)
    host: Optional[str] = None
    # Any JSON value; the allow-list check decides what is a usable port.
    port: Optional[Any] = None
    secure: Optional[StrictBool] = None
    user: Optional[str] = None
    password: Optional[SecretStr] = Field(default=None, alias="pass")

    @property
    def implicit_tls(self) -> bool:
        """Whether the session starts with TLS instead of upgrading via STARTTLS."""
        if self.secure is not None:
            return self.secure
        return self.port == 465


class MailEnvelope(BaseModel):
    """The single plain-text message to relay."""
    model_config = ConfigDict(populate_by_name=True)
    from_: Optional[str] = Field(default=None, alias="from")
    to: Optional[str] = None
    subject: Optional[str] = None
    body: Optional[str] = None


class SendMailRequest(BaseModel):
    """Body accepted by ``POST /send-mail``."""
    smtp: Optional[SmtpConfig] = None
    mail: Optional[MailEnvelope] = None


class SendMailResponse(BaseModel):
    success: bool
    message: str


class ErrorResponse(BaseModel):
    success: Optional[bool] = None
    error: str
