from __future__ import annotations

import logging

from sigmerge.domain.ports.store import DocumentStoreProtocol
from sigmerge.infra.logging.setup import logEvent


class CheckStoreUseCase:
    """
    Назначение/ответственность:
        Проверка доступности хранилища до запуска слияния.
    """

    def __init__(self, store: DocumentStoreProtocol):
        self.store = store

    def run(self, logger, run_id: str, collections: list[str] | None = None) -> None:
        """
        Контракт:
            - ping хранилища; ConnectivityError пробрасывается.
            - Имена коллекций только логируются: наличие коллекции не обязательно,
              пустая/отсутствующая коллекция читается как пустая.
        """
        self.store.ping()
        logEvent(logger, logging.INFO, run_id, "store", "Store ping OK")
        for name in collections or []:
            logEvent(logger, logging.DEBUG, run_id, "store", f"Collection configured: {name}")


__all__ = ["CheckStoreUseCase"]
