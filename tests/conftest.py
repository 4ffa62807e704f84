"""Shared SMTP doubles for the relay tests."""

from __future__ import annotations

import asyncio
from typing import Any

import aiosmtplib
import pytest


class FakeSMTP:
    """Stand-in for :class:`aiosmtplib.SMTP` that records every call.

    ``fail_on`` names the stage that raises: ``"connect"``, ``"login"``,
    ``"send"`` or ``"hang"`` (connect never completes).
    """

    def __init__(self, fail_on: str | None = None, **kwargs: Any):
        self.fail_on = fail_on
        self.kwargs = kwargs
        self.calls: list[str] = []
        self.sent: list[Any] = []
        self.login_args: tuple[str, str] | None = None
        self.is_connected = False

    async def connect(self):
        self.calls.append("connect")
        if self.fail_on == "hang":
            await asyncio.sleep(10)
        if self.fail_on == "connect":
            raise aiosmtplib.SMTPConnectError("Error connecting to smtp.internal.example on port 587")
        self.is_connected = True

    async def login(self, username: str, password: str):
        self.calls.append("login")
        self.login_args = (username, password)
        if self.fail_on == "login":
            raise aiosmtplib.SMTPAuthenticationError(535, "5.7.8 Username and Password not accepted")

    async def send_message(self, message):
        self.calls.append("send")
        if self.fail_on == "send":
            raise aiosmtplib.SMTPDataError(550, "5.7.1 Message rejected by relay policy")
        self.sent.append(message)
        return {}, "OK"

    async def quit(self):
        self.calls.append("quit")
        self.is_connected = False

    def close(self):
        self.calls.append("close")
        self.is_connected = False


class SmtpDoubleFactory:
    """Callable passed as ``smtp_factory``; keeps the clients it built."""

    def __init__(self, fail_on: str | None = None):
        self.fail_on = fail_on
        self.clients: list[FakeSMTP] = []

    def __call__(self, **kwargs: Any) -> FakeSMTP:
        client = FakeSMTP(self.fail_on, **kwargs)
        self.clients.append(client)
        return client


@pytest.fixture
def smtp_double():
    return SmtpDoubleFactory()


@pytest.fixture
def failing_smtp_double():
    return SmtpDoubleFactory(fail_on="login")


@pytest.fixture
def valid_payload():
    return {
        "smtp": {"host": "smtp.example.com", "port": 587, "user": "a@example.com", "pass": "x"},
        "mail": {"from": "a@example.com", "to": "b@example.com", "subject": "Hi", "body": "Hello"},
    }


@pytest.fixture
def make_smtp_double():
    return SmtpDoubleFactory
