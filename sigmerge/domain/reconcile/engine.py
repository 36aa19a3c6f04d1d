from __future__ import annotations

from sigmerge.domain.models import Delta, RecordSet, SignatureRecord
from sigmerge.domain.ports.progress import ProgressCallback, ProgressPhase, emit

CHECK_PROGRESS_EVERY = 10_000
FOUND_PROGRESS_EVERY = 1_000


def diff_record_sets(
    source: RecordSet,
    target: RecordSet,
    progress: ProgressCallback | None = None,
    *,
    checked_every: int = CHECK_PROGRESS_EVERY,
    found_every: int = FOUND_PROGRESS_EVERY,
) -> Delta:
    """
    Назначение:
        Вычисляет source минус target по полному равенству записей.

    Контракт:
        Вход: два материализованных RecordSet.
        Выход: Delta — записи source, которых нет в target, в порядке обхода source.
    Алгоритм:
        - Один проход по source, проверка членства по hash-индексу target.
        - События прогресса: каждые checked_every проверенных и каждые
          found_every найденных записей.
    """
    emit(progress, ProgressPhase.DIFF, "Checking for new documents to insert...", collection=source.collection)

    missing: list[SignatureRecord] = []
    checked = 0
    for record in source:
        checked += 1
        if checked_every and checked % checked_every == 0:
            emit(
                progress,
                ProgressPhase.DIFF,
                f"Checked {checked} documents for duplicates...",
                collection=source.collection,
                count=checked,
            )
        if record in target:
            continue
        missing.append(record)
        if found_every and len(missing) % found_every == 0:
            emit(
                progress,
                ProgressPhase.DIFF,
                f"Found {len(missing)} new documents to insert...",
                collection=source.collection,
                count=len(missing),
            )

    emit(
        progress,
        ProgressPhase.DIFF,
        f"Total new documents to insert: {len(missing)}",
        collection=target.collection,
        count=len(missing),
    )
    return Delta(records=tuple(missing), checked=checked)


__all__ = ["CHECK_PROGRESS_EVERY", "FOUND_PROGRESS_EVERY", "diff_record_sets"]
