"""In-memory implementation of Mailer for testing."""

from dataclasses import dataclass

from domain.model.errors import EmailDeliveryError


@dataclass
class SentMail:
    kind: str
    to: str
    payload: str


class FakeMailer:
    """Records outgoing mail; can be told to fail like an unreachable SMTP server."""

    def __init__(self, fail_welcome: bool = False, fail_reset: bool = False):
        self.fail_welcome = fail_welcome
        self.fail_reset = fail_reset
        self.sent: list[SentMail] = []

    async def send_welcome(self, email: str, name: str) -> None:
        if self.fail_welcome:
            raise EmailDeliveryError("SMTP connection refused")
        self.sent.append(SentMail(kind='welcome', to=email, payload=name))

    async def send_password_reset(self, email: str, reset_url: str) -> None:
        if self.fail_reset:
            raise EmailDeliveryError("SMTP connection refused")
        self.sent.append(SentMail(kind='password_reset', to=email, payload=reset_url))

    def last(self, kind: str) -> SentMail | None:
        for mail in reversed(self.sent):
            if mail.kind == kind:
                return mail
        return None
