from __future__ import annotations

from typing import Any, Iterator, Mapping

from bson.errors import BSONError
from pymongo import MongoClient
from pymongo.errors import BulkWriteError, ConfigurationError, OperationFailure, PyMongoError

from sigmerge.common.sanitize import truncateText
from sigmerge.domain.exceptions import ConnectivityError, DecodeError, WriteError
from sigmerge.domain.ports.store import CollectionHandleProtocol, DocumentStoreProtocol

APP_NAME = "sigmerge"


class MongoCollectionHandle(CollectionHandleProtocol):
    """
    Назначение/ответственность:
        Адаптер одной коллекции MongoDB под CollectionHandleProtocol.
    Взаимодействия:
        Оборачивает pymongo Collection, нормализует ошибки драйвера в
        ConnectivityError (чтение) и WriteError (вставка).
    """

    def __init__(self, collection, batchSize: int | None = None):
        self.collection = collection
        self.name: str = collection.name
        self.batchSize = batchSize

    def iter_documents(self) -> Iterator[Mapping[str, Any]]:
        """
        Назначение:
            Полный проход серверным курсором без фильтра.
        Ошибки:
            PyMongoError -> ConnectivityError, BSONError (битый BSON) -> DecodeError.
            processed здесь не известен, его дописывает загрузчик.
        """
        try:
            cursor = self.collection.find({})
            if self.batchSize:
                cursor = cursor.batch_size(self.batchSize)
        except PyMongoError as exc:
            raise ConnectivityError(
                f"Failed to open cursor on '{self.name}': {truncateText(str(exc))}",
                collection=self.name,
            ) from exc

        try:
            while True:
                try:
                    document = next(cursor)
                except StopIteration:
                    return
                except PyMongoError as exc:
                    raise ConnectivityError(
                        f"Cursor on '{self.name}' failed: {truncateText(str(exc))}",
                        collection=self.name,
                    ) from exc
                except BSONError as exc:
                    raise DecodeError(
                        f"Driver could not decode a document of '{self.name}': {truncateText(str(exc))}",
                        collection=self.name,
                    ) from exc
                yield document
        finally:
            cursor.close()

    def insert_many(self, documents: list[dict[str, Any]]) -> int:
        """
        Назначение:
            Один bulk insert всех документов (ordered).
        Ошибки:
            BulkWriteError -> WriteError с числом вставленных до сбоя.
            Прочие PyMongoError -> WriteError.
        """
        attempted = len(documents)
        try:
            result = self.collection.insert_many(documents, ordered=True)
        except BulkWriteError as exc:
            details = exc.details or {}
            write_errors = details.get("writeErrors") or []
            first = write_errors[0] if write_errors else {}
            raise WriteError(
                f"Bulk insert into '{self.name}' rejected: {truncateText(str(first.get('errmsg') or exc))}",
                collection=self.name,
                attempted=attempted,
                inserted=details.get("nInserted"),
                details={
                    "write_errors": len(write_errors),
                    "first_error_code": first.get("code"),
                },
            ) from exc
        except PyMongoError as exc:
            raise WriteError(
                f"Bulk insert into '{self.name}' failed: {truncateText(str(exc))}",
                collection=self.name,
                attempted=attempted,
            ) from exc
        return len(result.inserted_ids)


class MongoDocumentStore(DocumentStoreProtocol):
    """
    Назначение/ответственность:
        Адаптер MongoDB под DocumentStoreProtocol.
    Контракт:
        - Клиент создаётся лениво-подключающимся (pymongo соединяется при первом запросе).
        - Неверный URI -> ConnectivityError сразу в конструкторе.
        - serverSelectionTimeoutMS ограничивает ожидание недоступного сервера.
    """

    def __init__(
        self,
        uri: str,
        database: str,
        serverTimeoutMs: int = 5000,
        batchSize: int | None = None,
        clientFactory=MongoClient,
    ):
        self.database = database
        self.batchSize = batchSize
        try:
            self.client = clientFactory(uri, serverSelectionTimeoutMS=serverTimeoutMs, appname=APP_NAME)
        except ConfigurationError as exc:
            raise ConnectivityError(f"Invalid store configuration: {truncateText(str(exc))}") from exc
        self.db = self.client[database]

    def ping(self) -> None:
        try:
            self.client.admin.command("ping")
        except OperationFailure as exc:
            raise ConnectivityError(
                f"Store rejected the connection: {truncateText(str(exc))}",
                retryable=False,
                details={"code": getattr(exc, "code", None)},
            ) from exc
        except PyMongoError as exc:
            raise ConnectivityError(f"Store is unreachable: {truncateText(str(exc))}") from exc

    def collection(self, name: str) -> MongoCollectionHandle:
        return MongoCollectionHandle(self.db[name], batchSize=self.batchSize)

    def close(self) -> None:
        self.client.close()


__all__ = ["MongoDocumentStore", "MongoCollectionHandle"]
