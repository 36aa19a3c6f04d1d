from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable


class ProgressPhase(str, Enum):
    LOAD = "load"
    DIFF = "diff"
    WRITE = "write"
    SUMMARY = "summary"


@dataclass(frozen=True)
class ProgressEvent:
    """
    Назначение:
        Человекочитаемое событие прогресса, которое ядро отдаёт наружу.

    Контракт:
        - message готов к выводу как есть.
        - count: счётчик, к которому относится событие (загружено/проверено/найдено).
        - Событие носит справочный характер: потеря событий не влияет на результат.
    """

    phase: ProgressPhase
    message: str
    collection: str | None = None
    count: int = 0


ProgressCallback = Callable[[ProgressEvent], None]


def null_progress(event: ProgressEvent) -> None:
    return None


def emit(
    progress: ProgressCallback | None,
    phase: ProgressPhase,
    message: str,
    *,
    collection: str | None = None,
    count: int = 0,
) -> None:
    if progress is None:
        return
    progress(ProgressEvent(phase=phase, message=message, collection=collection, count=count))


__all__ = ["ProgressPhase", "ProgressEvent", "ProgressCallback", "null_progress", "emit"]
