from __future__ import annotations

from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from dataclasses import dataclass
import threading
from typing import Any

from sigmerge.domain.models import Delta, RecordSet
from sigmerge.domain.ports.progress import ProgressCallback, ProgressPhase, emit
from sigmerge.domain.ports.store import DocumentStoreProtocol
from sigmerge.domain.reconcile import LoadCancelled, diff_record_sets, load_record_set, write_delta


@dataclass(frozen=True)
class MergeSummary:
    """
    Назначение:
        Итог одного запуска слияния.

    Поля:
        source_scanned / target_scanned: прочитано документов (с дубликатами).
        source_distinct / target_distinct: различимых записей в памяти.
        new_found: размер Delta.
        inserted: вставлено в target (0 при no-op и dry-run).
        write_skipped: Delta пуста, запрос в хранилище не отправлялся.
        dry_run: запись пропущена по запросу.
    """

    source_collection: str
    target_collection: str
    source_scanned: int
    source_distinct: int
    target_scanned: int
    target_distinct: int
    new_found: int
    inserted: int
    write_skipped: bool
    dry_run: bool = False

    def as_dict(self) -> dict[str, Any]:
        return {
            "source_collection": self.source_collection,
            "target_collection": self.target_collection,
            "source_scanned": self.source_scanned,
            "source_distinct": self.source_distinct,
            "target_scanned": self.target_scanned,
            "target_distinct": self.target_distinct,
            "new_found": self.new_found,
            "inserted": self.inserted,
            "write_skipped": self.write_skipped,
            "dry_run": self.dry_run,
        }


@dataclass(frozen=True)
class MergeOutcome:
    summary: MergeSummary
    delta: Delta


class MergeUseCase:
    """
    Назначение/ответственность:
        Оркестрация сверки: Loader(source) -> Loader(target) -> diff -> write.
    Взаимодействия:
        - DocumentStoreProtocol: выдаёт коллекции.
        - ProgressCallback: получает человекочитаемые события.
    Ограничения:
        Обе коллекции целиком держатся в памяти до вычисления Delta.
        Любая ошибка прерывает запуск; повтор означает полный перезапуск (он идемпотентен).
    """

    def __init__(self, store: DocumentStoreProtocol):
        self.store = store

    def run(
        self,
        source_collection: str,
        target_collection: str,
        progress: ProgressCallback | None = None,
        *,
        dry_run: bool = False,
        concurrent_load: bool = False,
    ) -> MergeOutcome:
        """
        Контракт:
            Вход: имена коллекций, callback прогресса, флаги dry_run/concurrent_load.
            Выход: MergeOutcome (сводка + вычисленная Delta).
        Ошибки:
            ConnectivityError / DecodeError / WriteError пробрасываются как есть;
            при ошибке загрузки запись не выполняется.
        """
        source_handle = self.store.collection(source_collection)
        target_handle = self.store.collection(target_collection)

        source_set, target_set = self._load_both(source_handle, target_handle, progress, concurrent_load)

        delta = diff_record_sets(source_set, target_set, progress)

        inserted = 0
        write_skipped = delta.is_empty
        if dry_run:
            emit(
                progress,
                ProgressPhase.WRITE,
                f"Dry run: {len(delta)} new documents would be inserted.",
                collection=target_collection,
                count=len(delta),
            )
        else:
            result = write_delta(target_handle, delta, progress)
            inserted = result.inserted
            write_skipped = result.noop

        summary = MergeSummary(
            source_collection=source_collection,
            target_collection=target_collection,
            source_scanned=source_set.scanned,
            source_distinct=len(source_set),
            target_scanned=target_set.scanned,
            target_distinct=len(target_set),
            new_found=len(delta),
            inserted=inserted,
            write_skipped=write_skipped,
            dry_run=dry_run,
        )
        emit(
            progress,
            ProgressPhase.SUMMARY,
            (
                f"Merge complete! source_loaded={summary.source_scanned} target_loaded={summary.target_scanned} "
                f"new_found={summary.new_found} inserted={summary.inserted}"
            ),
            collection=target_collection,
            count=inserted,
        )
        return MergeOutcome(summary=summary, delta=delta)

    @staticmethod
    def _load_both(source_handle, target_handle, progress, concurrent_load: bool) -> tuple[RecordSet, RecordSet]:
        if not concurrent_load:
            source_set = load_record_set(source_handle, progress, role="source")
            target_set = load_record_set(target_handle, progress, role="target")
            return source_set, target_set

        # первая упавшая загрузка останавливает соседнюю, не дожидаясь её полного прохода
        stop = threading.Event()
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="sigmerge-load") as executor:
            source_future = executor.submit(load_record_set, source_handle, progress, role="source", stop_event=stop)
            target_future = executor.submit(load_record_set, target_handle, progress, role="target", stop_event=stop)
            wait([source_future, target_future], return_when=FIRST_EXCEPTION)
            for future in (source_future, target_future):
                if not future.done():
                    continue
                exc = future.exception()
                if exc is not None and not isinstance(exc, LoadCancelled):
                    stop.set()
                    raise exc
            return source_future.result(), target_future.result()


__all__ = ["MergeUseCase", "MergeSummary", "MergeOutcome"]
