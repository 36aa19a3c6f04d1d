from __future__ import annotations

from datetime import datetime
import uuid


def generate_run_id(now: datetime | None = None) -> str:
    """
    Назначение:
        run_id вида 20260111-182210-1f3a9c2e.
    Контракт:
        - Префикс времени делает имена логов и отчётов сортируемыми по запуску.
        - Суффикс из uuid4 различает запуски в одну секунду.
        - Только [0-9a-f-], безопасно для имён файлов.
    """
    stamp = (now or datetime.now()).strftime("%Y%m%d-%H%M%S")
    return f"{stamp}-{uuid.uuid4().hex[:8]}"
