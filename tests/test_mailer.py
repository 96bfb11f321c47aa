from __future__ import annotations

import dataclasses
import smtplib

import pytest

from account_service.domain.errors import MailDeliveryError
from account_service.notifications import mailer as mailer_module
from account_service.notifications.mailer import (
    LoggingMailer,
    SmtpMailer,
    build_mailer,
    compose_reset_email,
    compose_verification_email,
)


class RecordingSMTP:
    instances: list["RecordingSMTP"] = []

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port
        self.calls: list[tuple] = []
        RecordingSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        return False

    def starttls(self):
        self.calls.append(("starttls",))

    def login(self, user, password):
        self.calls.append(("login", user))

    def sendmail(self, sender, recipients, message):
        self.calls.append(("sendmail", sender, recipients, message))


def test_smtp_mailer_sends_html(monkeypatch):
    RecordingSMTP.instances = []
    monkeypatch.setattr(mailer_module.smtplib, "SMTP", RecordingSMTP)
    mailer = SmtpMailer(host="smtp.test", port=2525, sender="from@x.com", user="u", password="p")

    mailer.send("to@x.com", "Subject", "<b>hi</b>")

    smtp = RecordingSMTP.instances[0]
    assert (smtp.host, smtp.port) == ("smtp.test", 2525)
    assert smtp.calls[0] == ("starttls",)
    assert smtp.calls[1] == ("login", "u")
    _, sender, recipients, message = smtp.calls[2]
    assert sender == "from@x.com"
    assert recipients == ["to@x.com"]
    assert "text/html" in message


def test_smtp_failures_become_mail_delivery_errors(monkeypatch):
    def refuse(*args, **kwargs):
        raise smtplib.SMTPConnectError(421, "busy")

    monkeypatch.setattr(mailer_module.smtplib, "SMTP", refuse)
    mailer = SmtpMailer(host="smtp.test", port=25, sender="from@x.com", starttls=False)

    with pytest.raises(MailDeliveryError):
        mailer.send("to@x.com", "Subject", "body")


def test_build_mailer_without_host_logs_instead(settings):
    assert isinstance(build_mailer(dataclasses.replace(settings, smtp_host="")), LoggingMailer)


def test_build_mailer_with_host_uses_smtp(settings):
    assert isinstance(build_mailer(dataclasses.replace(settings, smtp_host="smtp.test")), SmtpMailer)


def test_verification_email_contains_token_and_link():
    subject, body = compose_verification_email("Tok3n", "http://testserver/users/verify")
    assert subject == "Please verify your email"
    assert "<b>Tok3n</b>" in body
    assert 'href="http://testserver/users/verify"' in body


def test_reset_email_mentions_expiry():
    _, body = compose_reset_email("http://testserver/users/reset/abc?token=t", ttl_minutes=15)
    assert "http://testserver/users/reset/abc?token=t" in body
    assert "15 minutes" in body
