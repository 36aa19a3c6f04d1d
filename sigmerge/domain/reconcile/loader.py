from __future__ import annotations

import threading

from sigmerge.domain.codec import decode_record
from sigmerge.domain.exceptions import ConnectivityError, DecodeError
from sigmerge.domain.models import RecordSet, SignatureRecord
from sigmerge.domain.ports.progress import ProgressCallback, ProgressPhase, emit
from sigmerge.domain.ports.store import CollectionHandleProtocol

LOAD_PROGRESS_EVERY = 10_000


class LoadCancelled(Exception):
    """Загрузка остановлена извне (соседняя параллельная загрузка упала)."""


def load_record_set(
    handle: CollectionHandleProtocol,
    progress: ProgressCallback | None = None,
    *,
    role: str = "source",
    progress_every: int = LOAD_PROGRESS_EVERY,
    stop_event: threading.Event | None = None,
) -> RecordSet:
    """
    Назначение:
        Загружает всю коллекцию в память в виде RecordSet.

    Контракт:
        Вход: handle — коллекция хранилища; role — "source"/"target" для сообщений.
        Выход: RecordSet с одной записью на каждое различимое значение.
    Ошибки:
        DecodeError — документ не декодируется; загрузка целиком отменяется.
        ConnectivityError — сбой курсора; в details попадает число обработанных документов.
        Ошибки, поднятые самим курсором (DecodeError адаптера), дополняются тем же контекстом.
    Алгоритм:
        - Полный проход курсором без фильтра.
        - Каждый документ декодируется и кладётся в set (дубликаты схлопываются).
        - Каждые progress_every документов отправляется событие прогресса.
        - Если stop_event выставлен, чтение прерывается с LoadCancelled.
    """
    name = handle.name
    emit(progress, ProgressPhase.LOAD, f"Loading {role} collection '{name}' into memory...", collection=name)

    records: set[SignatureRecord] = set()
    count = 0
    documents = iter(handle.iter_documents())
    try:
        while True:
            try:
                document = next(documents)
            except StopIteration:
                break
            except ConnectivityError as exc:
                raise ConnectivityError(
                    f"Reading {role} collection '{name}' failed after {count} documents: {exc.message}",
                    collection=name,
                    processed=count,
                ) from exc
            except DecodeError as exc:
                # store itself could not decode the raw document
                raise DecodeError(
                    f"Failed to read document #{count + 1} of {role} collection '{name}': {exc.message}",
                    collection=name,
                    processed=count,
                    field=exc.field,
                    document_id=exc.document_id,
                ) from exc

            if stop_event is not None and stop_event.is_set():
                raise LoadCancelled(f"Loading {role} collection '{name}' cancelled after {count} documents")

            try:
                record = decode_record(document)
            except DecodeError as exc:
                raise DecodeError(
                    f"Failed to decode document #{count + 1} of {role} collection '{name}': {exc.message}",
                    collection=name,
                    processed=count,
                    field=exc.field,
                    document_id=exc.document_id,
                ) from exc
            records.add(record)
            count += 1
            if progress_every and count % progress_every == 0:
                emit(
                    progress,
                    ProgressPhase.LOAD,
                    f"Loaded {count} documents from {role} collection into memory...",
                    collection=name,
                    count=count,
                )
    finally:
        close = getattr(documents, "close", None)
        if close is not None:
            close()

    emit(
        progress,
        ProgressPhase.LOAD,
        f"{role.capitalize()} collection '{name}' loaded with {count} documents.",
        collection=name,
        count=count,
    )
    return RecordSet(name, records, scanned=count)


__all__ = ["LOAD_PROGRESS_EVERY", "LoadCancelled", "load_record_set"]
