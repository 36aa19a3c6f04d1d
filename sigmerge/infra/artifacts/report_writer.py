from __future__ import annotations

import json
import os
from pathlib import Path

from sigmerge.common.sanitize import maskUri
from sigmerge.config import Settings
from sigmerge.domain.reporting.collector import ReportCollector, asdict_report


def createRunReport(runId: str, command: str, settings: Settings, configSources: list[str]) -> ReportCollector:
    """
    Назначение:
        Отчёт запуска с уже заполненными meta о хранилище и коллекциях.
        URI хранилища попадает в отчёт только в маскированном виде.
    """
    report = ReportCollector(run_id=runId, command=command)
    report.set_meta(
        database=settings.database,
        source_collection=settings.source_collection,
        target_collection=settings.target_collection,
        store_uri=maskUri(settings.mongo_uri),
    )
    if configSources:
        report.set_context("config", {"sources": configSources})
    return report


def finalizeReport(report: ReportCollector, durationMs: int, logFile: str | None, reportDir: str) -> None:
    report.set_context("runtime", {"log_file": logFile, "report_dir": reportDir})
    report.finish(duration_ms=durationMs)


def reportPathFor(reportDir: str, command: str, runId: str) -> Path:
    return Path(reportDir) / f"report_{command}_{runId}.json"


def writeReportJson(report: ReportCollector, reportDir: str) -> str:
    """
    Назначение:
        Пишет report_<command>_<run_id>.json.
    Гарантии:
        - Файл заменяется целиком (запись во временный файл + os.replace),
          поэтому читатель никогда не видит обрезанный JSON.
    """
    meta = report.meta
    path = reportPathFor(reportDir, meta.command, meta.run_id)
    path.parent.mkdir(parents=True, exist_ok=True)

    tmpPath = path.with_suffix(".json.tmp")
    with open(tmpPath, "w", encoding="utf-8") as f:
        json.dump(asdict_report(report.build()), f, ensure_ascii=False, indent=2)
    os.replace(tmpPath, path)
    return str(path)
