from __future__ import annotations

from typing import Any

from sigmerge.domain.error_codes import ErrorCode
from sigmerge.errors import AppError


class StoreError(AppError):
    """
    Назначение:
        Базовая ошибка работы с хранилищем документов.
    Инварианты/гарантии:
        - details всегда содержит collection и processed (сколько записей
          обработано к моменту сбоя), чтобы оператор видел фазу отказа.
    """

    error_code: ErrorCode = ErrorCode.UNEXPECTED_ERROR
    category_name: str = "store"

    def __init__(
        self,
        message: str,
        *,
        collection: str | None = None,
        processed: int = 0,
        retryable: bool = False,
        details: dict[str, Any] | None = None,
    ):
        merged = {"collection": collection, "processed": processed}
        merged.update(details or {})
        super().__init__(
            category=self.category_name,
            code=self.error_code.value,
            message=message,
            retryable=retryable,
            details=merged,
        )
        self.collection = collection
        self.processed = processed

    @property
    def exit_code(self) -> int:
        return self.error_code.exit_code


class ConnectivityError(StoreError):
    """
    Назначение:
        Хранилище недоступно, аутентификация не прошла или курсор оборвался
        во время чтения коллекции.
    """

    error_code = ErrorCode.CONNECTIVITY_ERROR
    category_name = "connectivity"

    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("retryable", True)
        super().__init__(message, **kwargs)


class DecodeError(StoreError):
    """
    Назначение:
        Документ коллекции не соответствует форме записи.
    Контракт:
        - field: имя поля, на котором упало декодирование (если известно).
        - document_id: строковое представление _id документа (если есть).
    """

    error_code = ErrorCode.DECODE_ERROR
    category_name = "decode"

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        document_id: str | None = None,
        **kwargs: Any,
    ):
        details = dict(kwargs.pop("details", None) or {})
        details.update({"field": field, "document_id": document_id})
        super().__init__(message, details=details, **kwargs)
        self.field = field
        self.document_id = document_id


class WriteError(StoreError):
    """
    Назначение:
        Bulk insert в целевую коллекцию отклонён хранилищем.
    Контракт:
        - attempted: сколько записей было отправлено.
        - inserted: сколько успело вставиться до сбоя, если хранилище это сообщило.
    """

    error_code = ErrorCode.WRITE_ERROR
    category_name = "write"

    def __init__(
        self,
        message: str,
        *,
        attempted: int = 0,
        inserted: int | None = None,
        **kwargs: Any,
    ):
        details = dict(kwargs.pop("details", None) or {})
        details.update({"attempted": attempted, "inserted": inserted})
        super().__init__(message, details=details, **kwargs)
        self.attempted = attempted
        self.inserted = inserted


__all__ = ["StoreError", "ConnectivityError", "DecodeError", "WriteError"]
