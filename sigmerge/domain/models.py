from __future__ import annotations

from dataclasses import dataclass, fields
from typing import AbstractSet, Iterable, Iterator


@dataclass(frozen=True)
class SignatureRecord:
    """
    Назначение/ответственность:
        Единица сверки: запись о подписи транзакции.

    Инварианты/гарантии:
        - Неизменяема после создания.
        - Равенство и hash считаются по всем полям, включая необязательные;
          None означает «поле отсутствует» и не равен никакому заданному значению.
        - Две записи с одной signature, но разным статусом — разные записи.
    """

    signature: str
    slot: int | None = None
    err: str | None = None
    memo: str | None = None
    block_time: int | None = None
    confirmation_status: str | None = None


RECORD_FIELDS: tuple[str, ...] = tuple(f.name for f in fields(SignatureRecord))


class RecordSet:
    """
    Назначение/ответственность:
        Дедуплицированная, неупорядоченная материализация всей коллекции в памяти.

    Инварианты/гарантии:
        - Содержит ровно одну запись на каждое различимое (по полному равенству) значение.
        - После создания не изменяется: наружу отдаются только операции чтения.
        - scanned >= len(self): scanned учитывает и схлопнутые дубликаты.

    Ограничения:
        Вся коллекция держится в памяти; это осознанный потолок масштабирования.
    """

    __slots__ = ("collection", "scanned", "_records")

    def __init__(self, collection: str, records: Iterable[SignatureRecord] = (), scanned: int | None = None):
        # Готовое множество забираем без копии: владелец передаёт его целиком.
        if isinstance(records, (set, frozenset)):
            self._records: AbstractSet[SignatureRecord] = records
        else:
            self._records = set(records)
        self.collection = collection
        self.scanned = len(self._records) if scanned is None else scanned

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, record: object) -> bool:
        return record in self._records

    def __iter__(self) -> Iterator[SignatureRecord]:
        return iter(self._records)

    @property
    def duplicates(self) -> int:
        return self.scanned - len(self._records)

    def __repr__(self) -> str:
        return f"RecordSet(collection={self.collection!r}, distinct={len(self)}, scanned={self.scanned})"


@dataclass(frozen=True)
class Delta:
    """
    Назначение:
        Упорядоченная последовательность записей, которые есть в source и
        отсутствуют в target.

    Контракт:
        - Порядок фиксирован в пределах одного запуска и используется писателем как есть.
        - checked: сколько записей source было проверено.
    """

    records: tuple[SignatureRecord, ...] = ()
    checked: int = 0

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[SignatureRecord]:
        return iter(self.records)

    @property
    def is_empty(self) -> bool:
        return not self.records


@dataclass(frozen=True)
class WriteResult:
    """
    Назначение:
        Итог шага записи.

    Контракт:
        - noop=True -> запрос в хранилище не отправлялся, inserted == 0.
    """

    inserted: int
    noop: bool = False


__all__ = ["SignatureRecord", "RECORD_FIELDS", "RecordSet", "Delta", "WriteResult"]
