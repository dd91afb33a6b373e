"""Unit tests for fire-and-forget email dispatch."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

from sessionkeeper.services._shared.ports import InMemoryEmailSender
from sessionkeeper.services.notifications.notifier import EmailNotifier
from tests.helpers.doubles import EchoRenderer


class _FailingSender:
    def send(self, to_address, subject, body_html):
        raise OSError("smtp down")


def test_reset_email_carries_link_and_lifetime():
    sender = InMemoryEmailSender()
    notifier = EmailNotifier(
        sender=sender,
        renderer=EchoRenderer(),
        reset_password_url="https://app/reset/{token}",
        reset_ttl_minutes=10,
    )

    notifier.send_password_reset("a@x.com", "tok123")

    (message,) = sender.outbox
    assert message.to_address == "a@x.com"
    assert "link=https://app/reset/tok123" in message.body_html
    assert "expires_minutes=10" in message.body_html


def test_delivery_failures_are_swallowed(caplog):
    notifier = EmailNotifier(sender=_FailingSender(), renderer=EchoRenderer())

    notifier.send_verification("a@x.com", "tok")

    assert any(r.getMessage().startswith("email.send_failed") for r in caplog.records)


def test_executor_dispatch_is_asynchronous():
    sender = InMemoryEmailSender()
    executor = ThreadPoolExecutor(max_workers=1)
    notifier = EmailNotifier(sender=sender, renderer=EchoRenderer(), executor=executor)

    notifier.send_password_changed("a@x.com")
    executor.shutdown(wait=True)

    assert [m.subject for m in sender.outbox] == ["Your password was changed"]


def test_dispatch_after_shutdown_is_dropped():
    sender = InMemoryEmailSender()
    executor = ThreadPoolExecutor(max_workers=1)
    executor.shutdown(wait=True)
    notifier = EmailNotifier(sender=sender, renderer=EchoRenderer(), executor=executor)

    notifier.send_password_changed("a@x.com")
    assert sender.outbox == []
