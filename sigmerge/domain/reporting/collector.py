from __future__ import annotations

from dataclasses import asdict
from typing import Any, Iterable

from sigmerge.common.time import getNowIso
from sigmerge.domain.models import SignatureRecord
from sigmerge.domain.reporting.models import ReportEnvelope, ReportMeta, ReportSummary

STATUS_SUCCESS = "SUCCESS"
STATUS_NOOP = "NOOP"
STATUS_DRY_RUN = "DRY_RUN"
STATUS_FAILED = "FAILED"


class ReportCollector:
    """
    Назначение/ответственность:
        Единый сборщик отчёта для команд sigmerge.
    Контракт:
        - items хранит не более meta.items_limit записей; при превышении
          выставляется meta.items_truncated.
        - Статус выставляется явно (set_status/set_error) или выводится в finish().
    """

    def __init__(self, run_id: str, command: str, started_at: str | None = None) -> None:
        self.meta = ReportMeta(
            run_id=run_id,
            command=command,
            started_at=started_at or getNowIso(),
        )
        self.summary = ReportSummary()
        self.items: list[dict[str, Any]] = []
        self.context: dict[str, Any] = {}
        self.error: dict[str, Any] | None = None
        self.status: str | None = None

    def set_meta(self, **values: Any) -> None:
        for key, value in values.items():
            if not hasattr(self.meta, key):
                raise AttributeError(f"Unknown report meta field: {key}")
            if value is not None:
                setattr(self.meta, key, value)

    def set_context(self, name: str, value: dict[str, Any]) -> None:
        self.context[name] = value

    def set_status(self, status: str) -> None:
        self.status = status

    def set_error(self, error: dict[str, Any]) -> None:
        self.error = error
        self.status = STATUS_FAILED

    def add_records(self, records: Iterable[SignatureRecord], status: str) -> None:
        limit = self.meta.items_limit
        for record in records:
            if limit is not None and len(self.items) >= limit:
                self.meta.items_truncated = True
                return
            self.items.append({"status": status, "record": asdict(record)})

    def finish(self, finished_at: str | None = None, duration_ms: int | None = None) -> None:
        self.meta.finished_at = finished_at or getNowIso()
        self.meta.duration_ms = duration_ms
        if self.status is None:
            self.status = STATUS_FAILED if self.error else STATUS_SUCCESS

    def build(self) -> ReportEnvelope:
        return ReportEnvelope(
            status=self.status or STATUS_SUCCESS,
            meta=self.meta,
            summary=self.summary,
            items=self.items,
            error=self.error,
            context=self.context,
        )


def asdict_report(envelope: ReportEnvelope) -> dict[str, Any]:
    return {
        "status": envelope.status,
        "meta": asdict(envelope.meta),
        "summary": asdict(envelope.summary),
        "items": list(envelope.items),
        "error": envelope.error,
        "context": envelope.context,
    }
