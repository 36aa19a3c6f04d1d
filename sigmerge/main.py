from __future__ import annotations

import logging
import sys
import time
from pathlib import Path

import typer

from sigmerge.common.run_id import generate_run_id
from sigmerge.common.sanitize import maskUri
from sigmerge.common.time import getDurationMs
from sigmerge.config import Settings, load_env_file, load_settings
from sigmerge.domain.error_codes import ErrorCode
from sigmerge.domain.exceptions import StoreError
from sigmerge.domain.reporting.collector import STATUS_DRY_RUN, STATUS_NOOP, STATUS_SUCCESS
from sigmerge.infra.artifacts.report_writer import createRunReport, finalizeReport, writeReportJson
from sigmerge.infra.logging.setup import (
    StdStreamToLogger,
    TeeStream,
    closeCommandLogger,
    createCommandLogger,
    logEvent,
    mapLogLevel,
    progressToLogger,
)
from sigmerge.infra.store.mongo_store import MongoDocumentStore
from sigmerge.usecases.check_store_usecase import CheckStoreUseCase
from sigmerge.usecases.merge_usecase import MergeUseCase

app = typer.Typer(no_args_is_help=True, add_completion=False)


def ensureDir(path: str) -> None:
    """
    Назначение:
        Создаёт каталог, если он отсутствует.
    """
    Path(path).mkdir(parents=True, exist_ok=True)


def requireCollections(settings: Settings) -> None:
    """
    Назначение:
        Проверяет, что заданы обе коллекции (source и target).

    Поведение:
        - Если чего-то не хватает, exit code 2.
    """
    missing = []
    if not settings.source_collection:
        missing.append("source_collection")
    if not settings.target_collection:
        missing.append("target_collection")

    if missing:
        typer.echo(f"ERROR: missing collection settings: {', '.join(missing)}", err=True)
        raise typer.Exit(code=ErrorCode.CONFIG_ERROR.exit_code)


def printRunHeader(runId: str, command: str, settings: Settings, sources: list[str]) -> None:
    """
    Назначение:
        Печатает безопасную сводку параметров запуска (без секретов).
    """
    typer.echo(
        f"run_id={runId} command={command} "
        f"mongo_uri={maskUri(settings.mongo_uri)} database={settings.database} "
        f"source={settings.source_collection} target={settings.target_collection} "
        f"sources={sources} log_level={settings.log_level}"
    )


def buildStore(settings: Settings) -> MongoDocumentStore:
    return MongoDocumentStore(
        uri=settings.mongo_uri,
        database=settings.database,
        serverTimeoutMs=settings.server_timeout_ms,
        batchSize=settings.batch_size,
    )


def reportFailure(logger, report, runId: str, exc: Exception) -> int:
    """
    Назначение:
        Единая обработка фатальной ошибки команды: лог, отчёт, stderr, код выхода.

    Выходные данные:
        int
            Код выхода, соответствующий категории ошибки.
    """
    if isinstance(exc, StoreError):
        logEvent(logger, logging.ERROR, runId, exc.category, f"{exc.code}: {exc.message} details={exc.details}")
        report.set_error(exc.to_dict())
        typer.echo(f"ERROR: {exc.code}: {exc.message} (see logs/report)", err=True)
        return exc.exit_code

    code = ErrorCode.UNEXPECTED_ERROR
    logEvent(logger, logging.ERROR, runId, "core", f"{code.value}: {exc!r}")
    report.set_error({"category": "unexpected", "code": code.value, "message": str(exc), "retryable": False, "details": {}})
    typer.echo(f"ERROR: unexpected failure: {exc} (see logs/report)", err=True)
    return code.exit_code


def runWithReport(
    ctx: typer.Context,
    commandName: str,
    requiresCollections: bool,
    runner,
) -> None:
    """
    Назначение:
        Унифицированная обвязка выполнения команд:
        - создаёт логгер + файл лога (и консольный вывод прогресса)
        - создаёт report.json skeleton
        - валидирует обязательные входы (коллекции)
        - перенаправляет stdout/stderr в лог (tee)
        - гарантирует запись отчёта в finally
    """
    runId = ctx.obj["runId"]
    settings: Settings = ctx.obj["settings"]
    sources = ctx.obj["sources"]

    startMonotonic = time.monotonic()

    logger, logFilePath = createCommandLogger(
        commandName=commandName,
        logDir=settings.log_dir,
        runId=runId,
        logLevel=settings.log_level,
        consoleStream=sys.stdout,
    )

    report = createRunReport(runId=runId, command=commandName, settings=settings, configSources=sources)

    originalStdout = sys.stdout
    originalStderr = sys.stderr

    stdoutLoggerStream = StdStreamToLogger(logger, logging.INFO, runId, "stdout")
    stderrLoggerStream = StdStreamToLogger(logger, logging.ERROR, runId, "stderr")

    sys.stdout = TeeStream(originalStdout, stdoutLoggerStream)
    sys.stderr = TeeStream(originalStderr, stderrLoggerStream)

    exitCode: int | None = None

    try:
        logEvent(logger, logging.DEBUG, runId, "core", "Command started")
        printRunHeader(runId, commandName, settings, sources)

        if requiresCollections:
            try:
                requireCollections(settings)
            except typer.Exit as exc:
                logEvent(logger, logging.ERROR, runId, "config", "Missing collection settings")
                report.set_error(
                    {
                        "category": "config",
                        "code": ErrorCode.CONFIG_ERROR.value,
                        "message": "source_collection and target_collection are required",
                        "retryable": False,
                        "details": {},
                    }
                )
                exitCode = exc.exit_code
                return

        exitCode = runner(logger, report)

    finally:
        durationMs = getDurationMs(startMonotonic)
        finalizeReport(
            report=report,
            durationMs=durationMs,
            logFile=logFilePath,
            reportDir=settings.report_dir,
        )
        reportPath = writeReportJson(report, settings.report_dir)
        logEvent(logger, logging.DEBUG, runId, "report", f"Report written: {reportPath}")

        sys.stdout.flush()
        sys.stderr.flush()
        sys.stdout = originalStdout
        sys.stderr = originalStderr
        closeCommandLogger(logger)

        if exitCode is not None:
            raise typer.Exit(code=exitCode)


def runMergeCommand(
    ctx: typer.Context,
    dryRun: bool,
    concurrentLoad: bool | None,
    reportItemsLimit: int | None,
) -> None:
    settings: Settings = ctx.obj["settings"]
    runId = ctx.obj["runId"]

    def execute(logger, report) -> int:
        report.set_meta(
            dry_run=dryRun,
            items_limit=reportItemsLimit if reportItemsLimit is not None else settings.report_items_limit,
        )
        try:
            store = buildStore(settings)
        except Exception as exc:
            return reportFailure(logger, report, runId, exc)

        try:
            useCase = MergeUseCase(store)
            outcome = useCase.run(
                source_collection=settings.source_collection,
                target_collection=settings.target_collection,
                progress=progressToLogger(logger, runId),
                dry_run=dryRun,
                concurrent_load=concurrentLoad if concurrentLoad is not None else settings.concurrent_load,
            )
        except Exception as exc:
            return reportFailure(logger, report, runId, exc)
        finally:
            store.close()

        summary = outcome.summary
        report.summary.source_scanned = summary.source_scanned
        report.summary.source_distinct = summary.source_distinct
        report.summary.source_duplicates = summary.source_scanned - summary.source_distinct
        report.summary.target_scanned = summary.target_scanned
        report.summary.target_distinct = summary.target_distinct
        report.summary.target_duplicates = summary.target_scanned - summary.target_distinct
        report.summary.new_found = summary.new_found
        report.summary.inserted = summary.inserted

        if dryRun:
            report.add_records(outcome.delta, status="WOULD_INSERT")
            report.set_status(STATUS_DRY_RUN)
        elif summary.write_skipped:
            report.set_status(STATUS_NOOP)
        else:
            report.add_records(outcome.delta, status="INSERTED")
            report.set_status(STATUS_SUCCESS)
        return 0

    runWithReport(
        ctx=ctx,
        commandName="merge",
        requiresCollections=True,
        runner=execute,
    )


def runCheckStoreCommand(ctx: typer.Context) -> None:
    settings: Settings = ctx.obj["settings"]
    runId = ctx.obj["runId"]

    def execute(logger, report) -> int:
        try:
            store = buildStore(settings)
        except Exception as exc:
            return reportFailure(logger, report, runId, exc)
        try:
            collections = [name for name in (settings.source_collection, settings.target_collection) if name]
            CheckStoreUseCase(store).run(logger, runId, collections)
        except Exception as exc:
            return reportFailure(logger, report, runId, exc)
        finally:
            store.close()
        typer.echo(f"OK: store reachable at {maskUri(settings.mongo_uri)} database={settings.database}")
        return 0

    runWithReport(
        ctx=ctx,
        commandName="check-store",
        requiresCollections=False,
        runner=execute,
    )


@app.callback()
def main(
    ctx: typer.Context,
    config: str | None = typer.Option(None, "--config", help="Path to YAML config"),
    envFile: str | None = typer.Option(None, "--env-file", help="Path to .env file (default: ./.env if present)"),
    runId: str | None = typer.Option(None, "--run-id", help="Run identifier (default: generated)"),
    mongoUri: str | None = typer.Option(None, "--mongo-uri", help="MongoDB connection URI"),
    database: str | None = typer.Option(None, "--database", help="Database name"),
    sourceCollection: str | None = typer.Option(None, "--source-collection", "--source", help="Source collection name"),
    targetCollection: str | None = typer.Option(None, "--target-collection", "--target", help="Target collection name"),
    serverTimeoutMs: int | None = typer.Option(None, "--server-timeout-ms", help="Server selection timeout in ms"),
    batchSize: int | None = typer.Option(None, "--batch-size", help="Cursor batch size"),
    logLevel: str | None = typer.Option(None, "--log-level", help="ERROR|WARN|INFO|DEBUG"),
    logDir: str | None = typer.Option(None, "--log-dir", help="Directory for log files"),
    reportDir: str | None = typer.Option(None, "--report-dir", help="Directory for report files"),
):
    """
    Назначение:
        Глобальная инициализация CLI:
        - подгружает .env
        - генерирует/принимает run_id
        - загружает настройки (CLI > ENV > config > defaults)
        - создаёт каталоги log/report
        - сохраняет всё в ctx.obj для подкоманд
    """
    load_env_file(envFile)

    if not runId:
        runId = generate_run_id()

    cliOverrides = {
        "mongo_uri": mongoUri,
        "database": database,
        "source_collection": sourceCollection,
        "target_collection": targetCollection,
        "server_timeout_ms": serverTimeoutMs,
        "batch_size": batchSize,
        "log_level": logLevel,
        "log_dir": logDir,
        "report_dir": reportDir,
    }
    try:
        loaded = load_settings(config_path=config, cli_overrides=cliOverrides)
        mapLogLevel(loaded.settings.log_level)
    except ValueError as exc:
        typer.echo(f"ERROR: invalid settings: {exc}", err=True)
        raise typer.Exit(code=ErrorCode.CONFIG_ERROR.exit_code)

    ensureDir(loaded.settings.log_dir)
    ensureDir(loaded.settings.report_dir)

    ctx.obj = {
        "runId": runId,
        "settings": loaded.settings,
        "sources": loaded.sources_used,
        "configPath": config,
    }


@app.command("merge")
def merge(
    ctx: typer.Context,
    dryRun: bool = typer.Option(False, "--dry-run/--no-dry-run", help="Load and diff, but do not insert"),
    concurrentLoad: bool | None = typer.Option(
        None,
        "--concurrent-load/--no-concurrent-load",
        help="Load source and target collections in parallel",
        show_default=True,
    ),
    reportItemsLimit: int | None = typer.Option(None, "--report-items-limit", min=0, help="Limit report items stored"),
):
    """Append records present in source and missing in target."""
    runMergeCommand(ctx, dryRun=dryRun, concurrentLoad=concurrentLoad, reportItemsLimit=reportItemsLimit)


@app.command("check-store")
def checkStore(ctx: typer.Context):
    """Ping the document store."""
    runCheckStoreCommand(ctx)


if __name__ == "__main__":
    app()
