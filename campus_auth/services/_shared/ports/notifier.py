from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Protocol


class Notifier(Protocol):
    """Fire-and-forget outbound messages to a principal's email address.

    Implementations may raise; callers treat every send as best-effort and
    never let a failure change the outcome of the flow that triggered it.
    """

    def send_verification_code(self, email: str, code: str) -> None: ...

    def send_password_reset(self, email: str, reset_url: str) -> None: ...

    def send_welcome(self, email: str, name: str) -> None: ...

    def send_password_changed(self, email: str, name: str) -> None: ...


@dataclass(frozen=True, slots=True)
class OutboundMessage:
    kind: str
    to: str
    payload: dict[str, str]


@dataclass(slots=True)
class InMemoryNotifier(Notifier):
    """
    Notifier that records messages in an outbox.

    .. note::
       Used by tests and local runs; ``fail`` makes every send raise so the
       best-effort contract can be exercised.
    """

    outbox: list[OutboundMessage] = field(default_factory=list)
    fail: bool = False
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def _record(self, kind: str, to: str, **payload: str) -> None:
        if self.fail:
            raise RuntimeError(f"Simulated delivery failure for {kind}")
        with self._lock:
            self.outbox.append(OutboundMessage(kind=kind, to=to, payload=payload))

    def send_verification_code(self, email: str, code: str) -> None:
        self._record("verification_code", email, code=code)

    def send_password_reset(self, email: str, reset_url: str) -> None:
        self._record("password_reset", email, reset_url=reset_url)

    def send_welcome(self, email: str, name: str) -> None:
        self._record("welcome", email, name=name)

    def send_password_changed(self, email: str, name: str) -> None:
        self._record("password_changed", email, name=name)

    def messages(self, kind: str | None = None, to: str | None = None) -> list[OutboundMessage]:
        with self._lock:
            return [
                m
                for m in self.outbox
                if (kind is None or m.kind == kind) and (to is None or m.to == to)
            ]

    def last(self, kind: str, to: str | None = None) -> OutboundMessage | None:
        found = self.messages(kind, to)
        return found[-1] if found else None

    def clear(self) -> None:
        with self._lock:
            self.outbox.clear()
