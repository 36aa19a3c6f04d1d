from __future__ import annotations

from dataclasses import asdict
from typing import Any, Mapping

from sigmerge.domain.exceptions import DecodeError
from sigmerge.domain.models import SignatureRecord

_INT_FIELDS = ("slot", "block_time")
_STR_FIELDS = ("err", "memo", "confirmation_status")


def _describe_id(document: Mapping[str, Any]) -> str | None:
    value = document.get("_id")
    if value is None:
        return None
    return str(value)


def _type_name(value: Any) -> str:
    return type(value).__name__


def decode_record(document: Any) -> SignatureRecord:
    """
    Назначение:
        Преобразует документ хранилища в SignatureRecord.

    Контракт:
        Вход: mapping (документ коллекции).
        Выход: SignatureRecord.
    Ошибки:
        DecodeError — документ не mapping, signature отсутствует/не строка,
        необязательное поле имеет неверный тип.
    Алгоритм:
        - Отсутствующее поле и null декодируются в None.
        - Целые поля не принимают bool и float, строковые — ничего кроме str.
        - Лишние ключи (в т.ч. _id) игнорируются.
    """
    if not isinstance(document, Mapping):
        raise DecodeError(f"Document is not a mapping: {_type_name(document)}")

    document_id = _describe_id(document)

    signature = document.get("signature")
    if signature is None:
        raise DecodeError("Missing required field 'signature'", field="signature", document_id=document_id)
    if not isinstance(signature, str):
        raise DecodeError(
            f"Field 'signature' must be a string, got {_type_name(signature)}",
            field="signature",
            document_id=document_id,
        )

    values: dict[str, Any] = {}
    for name in _INT_FIELDS:
        value = document.get(name)
        if value is not None and (isinstance(value, bool) or not isinstance(value, int)):
            raise DecodeError(
                f"Field '{name}' must be an integer, got {_type_name(value)}",
                field=name,
                document_id=document_id,
            )
        values[name] = value
    for name in _STR_FIELDS:
        value = document.get(name)
        if value is not None and not isinstance(value, str):
            raise DecodeError(
                f"Field '{name}' must be a string, got {_type_name(value)}",
                field=name,
                document_id=document_id,
            )
        values[name] = value

    return SignatureRecord(signature=signature, **values)


def encode_record(record: SignatureRecord) -> dict[str, Any]:
    """
    Назначение:
        Документ для вставки: все поля записываются, отсутствующие явным null.
    """
    return asdict(record)


__all__ = ["decode_record", "encode_record"]
