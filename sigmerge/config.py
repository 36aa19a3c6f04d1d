from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import os

from dotenv import load_dotenv
import yaml


@dataclass(frozen=True)
class Settings:
    # Store
    mongo_uri: str = "mongodb://localhost:27017"
    database: str = "OBv2_Data"
    source_collection: str | None = None
    target_collection: str | None = None
    server_timeout_ms: int = 5000
    batch_size: int | None = None

    # Run
    concurrent_load: bool = False

    # Logging / artifacts
    log_level: str = "INFO"
    log_dir: str = "./logs"
    report_dir: str = "./reports"
    report_items_limit: int = 200


@dataclass(frozen=True)
class LoadedSettings:
    settings: Settings
    sources_used: list[str]


ENV_KEYS: dict[str, tuple[str, ...]] = {
    "mongo_uri": ("SIGMERGE_MONGO_URI", "MONGODB_URI"),
    "database": ("SIGMERGE_DATABASE",),
    "source_collection": ("SOURCE_COLLECTION",),
    "target_collection": ("TARGET_COLLECTION",),
    "server_timeout_ms": ("SIGMERGE_SERVER_TIMEOUT_MS",),
    "batch_size": ("SIGMERGE_BATCH_SIZE",),
    "concurrent_load": ("SIGMERGE_CONCURRENT_LOAD",),
    "log_level": ("SIGMERGE_LOG_LEVEL",),
    "log_dir": ("SIGMERGE_LOG_DIR",),
    "report_dir": ("SIGMERGE_REPORT_DIR",),
    "report_items_limit": ("SIGMERGE_REPORT_ITEMS_LIMIT",),
}

_INT_KEYS = ("server_timeout_ms", "batch_size", "report_items_limit")
_BOOL_KEYS = ("concurrent_load",)


def _read_yaml_config(path: Path) -> dict:
    if not path.exists():
        return {}
    if not path.is_file():
        return {}
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            return {}
        return data


def _env_get(name: str) -> str | None:
    v = os.getenv(name)
    if v is None or v.strip() == "":
        return None
    return v.strip()


def _env_first(names: tuple[str, ...]) -> str | None:
    for name in names:
        value = _env_get(name)
        if value is not None:
            return value
    return None


def parse_int(v: str | int | None) -> int | None:
    if v is None:
        return None
    if isinstance(v, bool):
        raise ValueError(f"Invalid integer value: {v}")
    if isinstance(v, int):
        return v
    try:
        return int(str(v).strip())
    except ValueError:
        raise ValueError(f"Invalid integer value: {v}") from None


def parse_bool(v: str | bool | None) -> bool | None:
    if v is None:
        return None
    if isinstance(v, bool):
        return v
    vv = str(v).strip().lower()
    if vv in ("1", "true", "yes", "y"):
        return True
    if vv in ("0", "false", "no", "n"):
        return False
    raise ValueError(f"Invalid boolean value: {v}")


def load_env_file(env_file: str | None) -> bool:
    """
    Назначение:
        Подгружает .env в окружение процесса (переменные окружения приоритетнее).

    Входные данные:
        env_file: str | None
            Явный путь; если не задан, ищется .env в текущем каталоге.

    Выходные данные:
        bool
            True, если файл найден и прочитан.
    """
    path = Path(env_file) if env_file else Path.cwd() / ".env"
    if not path.is_file():
        return False
    return load_dotenv(dotenv_path=path, override=False)


def load_settings(
    config_path: str | None,
    cli_overrides: dict,
) -> LoadedSettings:
    """
    Priority: CLI > ENV > config > defaults
    """
    sources: list[str] = []
    defaults = Settings()

    # 1) config file
    cfg: dict = {}
    if config_path:
        cfg = _read_yaml_config(Path(config_path))
        if cfg:
            sources.append("config")

    # 2) env
    env = {key: _env_first(names) for key, names in ENV_KEYS.items()}
    if any(v is not None for v in env.values()):
        sources.append("env")

    merged = {key: cfg.get(key, getattr(defaults, key)) for key in ENV_KEYS}

    for key, value in env.items():
        if value is not None:
            merged[key] = value

    # 3) apply CLI overrides (only those explicitly passed)
    if any(v is not None for v in cli_overrides.values()):
        sources.append("cli")

    for k, v in cli_overrides.items():
        if v is None:
            continue
        merged[k] = v

    for key in _INT_KEYS:
        merged[key] = parse_int(merged[key])
    for key in _BOOL_KEYS:
        merged[key] = bool(parse_bool(merged[key]))

    if merged["server_timeout_ms"] is None or merged["server_timeout_ms"] <= 0:
        raise ValueError(f"server_timeout_ms must be positive: {merged['server_timeout_ms']}")
    if merged["batch_size"] is not None and merged["batch_size"] <= 0:
        raise ValueError(f"batch_size must be positive: {merged['batch_size']}")
    if merged["report_items_limit"] is None or merged["report_items_limit"] < 0:
        raise ValueError(f"report_items_limit must not be negative: {merged['report_items_limit']}")

    settings = Settings(
        mongo_uri=str(merged["mongo_uri"]),
        database=str(merged["database"]),
        source_collection=merged["source_collection"],
        target_collection=merged["target_collection"],
        server_timeout_ms=merged["server_timeout_ms"],
        batch_size=merged["batch_size"],
        concurrent_load=merged["concurrent_load"],
        log_level=str(merged["log_level"]),
        log_dir=str(merged["log_dir"]),
        report_dir=str(merged["report_dir"]),
        report_items_limit=merged["report_items_limit"],
    )

    return LoadedSettings(settings=settings, sources_used=sources)


__all__ = ["Settings", "LoadedSettings", "ENV_KEYS", "load_env_file", "load_settings", "parse_int", "parse_bool"]
