from __future__ import annotations

from typing import Any, Iterable, Mapping, Protocol, runtime_checkable


@runtime_checkable
class CollectionHandleProtocol(Protocol):
    """
    Назначение/ответственность:
        Порт доступа к одной именованной коллекции хранилища.
    Взаимодействия:
        Используется загрузчиком (чтение) и писателем (bulk insert);
        реализации скрывают драйвер и транспорт.
    """

    name: str

    def iter_documents(self) -> Iterable[Mapping[str, Any]]:
        """
        Контракт:
            - Возвращает все документы коллекции без фильтра (серверный курсор).
            - Сбой транспорта -> ConnectivityError.
        """
        ...

    def insert_many(self, documents: list[dict[str, Any]]) -> int:
        """
        Контракт:
            - Один bulk insert всех документов.
            - Возвращает число вставленных документов.
            - Любой отказ хранилища -> WriteError, без повторов.
        """
        ...


@runtime_checkable
class DocumentStoreProtocol(Protocol):
    """
    Назначение/ответственность:
        Порт хранилища документов: проверка доступности и выдача коллекций.
    """

    def ping(self) -> None:
        """
        Контракт:
            - Недоступность или отказ аутентификации -> ConnectivityError.
        """
        ...

    def collection(self, name: str) -> CollectionHandleProtocol: ...

    def close(self) -> None: ...


__all__ = ["CollectionHandleProtocol", "DocumentStoreProtocol"]
