"""
Unit tests for the mailer: templates, dummy transport and SMTP failure mapping.
"""
import smtplib

import pytest

from sunnah_audio.config import Settings
from sunnah_audio.core import mailer as mailer_module
from sunnah_audio.core.errors import UpstreamFailure
from sunnah_audio.core.mailer import Mailer, render_otp_email, render_reset_confirmation_email

pytestmark = pytest.mark.asyncio


async def test_otp_template_contains_code():
    subject, text, html = render_otp_email("482913")
    assert "482913" in text and "482913" in html
    assert "10 minutes" in text


async def test_confirmation_template():
    subject, text, html = render_reset_confirmation_email()
    assert "changed" in subject.lower()
    assert "reset successfully" in text


async def test_dummy_transport_sends_nothing(monkeypatch):
    def forbidden(*a, **kw):
        raise AssertionError("SMTP must not be used")

    monkeypatch.setattr(mailer_module.smtplib, "SMTP", forbidden)
    await Mailer(Settings(email_transport="dummy")).send_otp("aisha@example.org", "482913")


async def test_smtp_failure_is_upstream_failure(monkeypatch):
    class BrokenSMTP:
        def __init__(self, host, port, timeout=None):
            assert timeout == 10.0
            raise smtplib.SMTPConnectError(421, b"relay unavailable")

    monkeypatch.setattr(mailer_module.smtplib, "SMTP", BrokenSMTP)
    mailer = Mailer(Settings(email_transport="smtp", smtp_host="relay.invalid", smtp_port=587))
    with pytest.raises(UpstreamFailure):
        await mailer.send_reset_confirmation("aisha@example.org")


async def test_smtp_message_goes_through_starttls_and_login(monkeypatch):
    calls = []

    class FakeSMTP:
        def __init__(self, host, port, timeout=None):
            calls.append(("connect", host, port, timeout))

        def __enter__(self):
            return self

        def __exit__(self, *exc):
            return False

        def starttls(self, context=None):
            calls.append(("starttls",))

        def login(self, user, password):
            calls.append(("login", user))

        def sendmail(self, sender, recipients, message):
            calls.append(("sendmail", sender, tuple(recipients)))

    monkeypatch.setattr(mailer_module.smtplib, "SMTP", FakeSMTP)
    settings = Settings(
        email_transport="smtp",
        smtp_host="smtp.example.org",
        smtp_port=587,
        smtp_username="mailer",
        smtp_password="secret",
        smtp_from_email="no-reply@example.org",
    )
    await Mailer(settings).send_otp("aisha@example.org", "482913")
    assert calls == [
        ("connect", "smtp.example.org", 587, 10.0),
        ("starttls",),
        ("login", "mailer"),
        ("sendmail", "no-reply@example.org", ("aisha@example.org",)),
    ]
