from __future__ import annotations

from sigmerge.domain.codec import encode_record
from sigmerge.domain.models import Delta, WriteResult
from sigmerge.domain.ports.progress import ProgressCallback, ProgressPhase, emit
from sigmerge.domain.ports.store import CollectionHandleProtocol


def write_delta(
    handle: CollectionHandleProtocol,
    delta: Delta,
    progress: ProgressCallback | None = None,
) -> WriteResult:
    """
    Назначение:
        Дописывает Delta в целевую коллекцию одним bulk insert.

    Контракт:
        - Пустая Delta: запрос не отправляется, WriteResult(inserted=0, noop=True).
        - Иначе один insert_many; WriteError от хранилища пробрасывается без повторов.
        - Существующие записи target не изменяются и не удаляются.
    """
    name = handle.name
    if delta.is_empty:
        emit(progress, ProgressPhase.WRITE, "No new documents to insert.", collection=name)
        return WriteResult(inserted=0, noop=True)

    documents = [encode_record(record) for record in delta]
    inserted = handle.insert_many(documents)
    emit(
        progress,
        ProgressPhase.WRITE,
        f"Inserted {inserted} new documents into target collection.",
        collection=name,
        count=inserted,
    )
    return WriteResult(inserted=inserted)


__all__ = ["write_delta"]
