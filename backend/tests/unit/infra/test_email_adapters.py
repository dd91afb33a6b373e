"""Unit tests for the Flask-Mail sender and Jinja renderer adapters."""

from __future__ import annotations

from sessionkeeper.infra.mail.flask_mail_sender import FlaskMailSender
from sessionkeeper.infra.templates.jinja_renderer import JinjaTemplateRenderer


def test_renderer_fills_reset_template(app):
    html = JinjaTemplateRenderer(app).render(
        "reset_password.html",
        {"email": "a@x.com", "link": "https://app/reset/tok", "expires_minutes": 10},
    )
    assert "https://app/reset/tok" in html
    assert "10 minutes" in html


def test_sender_hands_message_to_flask_mail(app, outbox):
    FlaskMailSender(app).send("a@x.com", "Hello", "<p>hi</p>")

    assert len(outbox) == 1
    message = outbox[0]
    assert message.recipients == ["a@x.com"]
    assert message.subject == "Hello"
    assert message.html == "<p>hi</p>"
    assert message.sender == app.config["MAIL_DEFAULT_SENDER"]
