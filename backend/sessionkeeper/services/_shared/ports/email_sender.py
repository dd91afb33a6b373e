from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


class EmailSender(Protocol):
    """Port for delivering one HTML email. Implementations may raise."""

    def send(self, to_address: str, subject: str, body_html: str) -> None: ...


@dataclass(frozen=True, slots=True)
class SentEmail:
    to_address: str
    subject: str
    body_html: str


class InMemoryEmailSender(EmailSender):
    """Collects messages instead of sending them."""

    def __init__(self) -> None:
        self.outbox: list[SentEmail] = []

    def send(self, to_address: str, subject: str, body_html: str) -> None:
        self.outbox.append(SentEmail(to_address, subject, body_html))
