"""User-facing notices (the dismissible toasts of the web client)."""

from pydantic import BaseModel
from typing import List, Protocol
from healthcheck.models.triage import NoticeLevel


class Notice(BaseModel):
    level: NoticeLevel
    title: str
    message: str


class NoticeSink(Protocol):
    def push(self, notice: Notice) -> None: ...


class NoticeBuffer:
    """Collects notices until the API drains them into a response."""

    def __init__(self):
        self._pending: List[Notice] = []

    def push(self, notice: Notice) -> None:
        self._pending.append(notice)

    def drain(self) -> List[Notice]:
        pending, self._pending = self._pending, []
        return pending

    def __len__(self) -> int:
        return len(self._pending)
