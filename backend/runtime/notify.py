import logging
from dataclasses import dataclass
from enum import Enum


log = logging.getLogger(__name__)


class ToastKind(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    WARNING = "warning"


@dataclass
class Toast:
    message: str
    kind: ToastKind
    duration_ms: int = 3000


class Notifier:
    """Collects toast notifications for whatever surface displays them."""

    def __init__(self, duration_ms: int = 3000):
        self.duration_ms = duration_ms
        self.toasts: list[Toast] = []

    def show(self, message: str, kind: ToastKind = ToastKind.SUCCESS) -> Toast:
        toast = Toast(message=message, kind=kind, duration_ms=self.duration_ms)
        self.toasts.append(toast)
        level = logging.WARNING if kind is ToastKind.ERROR else logging.INFO
        log.log(level, "toast (%s): %s", kind.value, message)
        return toast

    @property
    def last(self) -> Toast | None:
        return self.toasts[-1] if self.toasts else None

    def of_kind(self, kind: ToastKind) -> list[Toast]:
        return [t for t in self.toasts if t.kind is kind]

    def clear(self) -> None:
        self.toasts.clear()
