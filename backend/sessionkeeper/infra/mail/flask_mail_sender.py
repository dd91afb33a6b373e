from __future__ import annotations

from dataclasses import dataclass

from flask import Flask
from flask_mail import Message

from sessionkeeper.core.extensions import mail
from sessionkeeper.services._shared.ports import EmailSender


@dataclass(slots=True)
class FlaskMailSender(EmailSender):
    """
    Adapter delivering HTML email through Flask-Mail.

    Holds the application (not a context) so it can be called from a worker
    thread; each send pushes its own app context.

    :param app: Flask application configured with ``MAIL_*`` settings.
    """

    app: Flask

    def send(self, to_address: str, subject: str, body_html: str) -> None:
        with self.app.app_context():
            msg = Message(
                subject=subject,
                recipients=[to_address],
                html=body_html,
                sender=self.app.config.get("MAIL_DEFAULT_SENDER"),
            )
            mail.send(msg)
