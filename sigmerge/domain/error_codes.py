from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    """
    Назначение:
        Единая таксономия кодов ошибок запуска слияния.
    """

    CONFIG_ERROR = "CONFIG_ERROR"
    CONNECTIVITY_ERROR = "CONNECTIVITY_ERROR"
    DECODE_ERROR = "DECODE_ERROR"
    WRITE_ERROR = "WRITE_ERROR"
    UNEXPECTED_ERROR = "UNEXPECTED_ERROR"

    @property
    def exit_code(self) -> int:
        """
        Назначение:
            Код завершения процесса для данной категории ошибки.
        Контракт:
            - Каждая фатальная категория получает собственный код,
              чтобы вызывающая сторона могла различать фазу сбоя.
        """
        return _EXIT_CODES[self]


_EXIT_CODES = {
    ErrorCode.UNEXPECTED_ERROR: 1,
    ErrorCode.CONFIG_ERROR: 2,
    ErrorCode.CONNECTIVITY_ERROR: 3,
    ErrorCode.DECODE_ERROR: 4,
    ErrorCode.WRITE_ERROR: 5,
}
