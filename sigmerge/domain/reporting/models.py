from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class ReportMeta:
    """
    Назначение:
        Метаданные запуска команды.
    """

    run_id: str
    command: str
    started_at: str
    finished_at: str | None = None
    duration_ms: int | None = None
    database: str | None = None
    source_collection: str | None = None
    target_collection: str | None = None
    store_uri: str | None = None
    dry_run: bool = False
    items_limit: int | None = None
    items_truncated: bool = False


@dataclass
class ReportSummary:
    """
    Назначение:
        Счётчики слияния.
    """

    source_scanned: int = 0
    source_distinct: int = 0
    source_duplicates: int = 0
    target_scanned: int = 0
    target_distinct: int = 0
    target_duplicates: int = 0
    new_found: int = 0
    inserted: int = 0


@dataclass
class ReportEnvelope:
    """
    Назначение:
        Корневой объект отчёта.
    """

    status: str
    meta: ReportMeta
    summary: ReportSummary
    items: list[dict[str, Any]] = field(default_factory=list)
    error: dict[str, Any] | None = None
    context: dict[str, Any] = field(default_factory=dict)
