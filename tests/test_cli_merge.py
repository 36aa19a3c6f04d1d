import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from conftest import FakeStore, make_doc
from sigmerge.domain.exceptions import ConnectivityError, WriteError
from sigmerge.main import app

runner = CliRunner()


@pytest.fixture
def store(monkeypatch):
    import sigmerge.main as cli_module

    fake = FakeStore()
    created = []

    def factory(*args, **kwargs):
        created.append(kwargs)
        return fake

    monkeypatch.setattr(cli_module, "MongoDocumentStore", factory)
    fake.created = created
    return fake


def _base_args(tmp_path: Path, *extra: str) -> list[str]:
    return [
        "--log-dir",
        str(tmp_path / "logs"),
        "--report-dir",
        str(tmp_path / "reports"),
        "--run-id",
        "run-1",
        "--mongo-uri",
        "mongodb://svc:hunter2@db:27017",
        "--source",
        "src",
        "--target",
        "dst",
        *extra,
    ]


def _report(tmp_path: Path, command: str = "merge") -> dict:
    path = tmp_path / "reports" / f"report_{command}_run-1.json"
    return json.loads(path.read_text(encoding="utf-8"))


def test_help_shows_commands():
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "merge" in result.stdout
    assert "check-store" in result.stdout


def test_merge_requires_collections(tmp_path, store):
    result = runner.invoke(app, ["--log-dir", str(tmp_path / "logs"), "--report-dir", str(tmp_path / "reports"), "merge"])
    assert result.exit_code == 2
    assert "missing collection settings" in result.output
    assert store.created == []


def test_merge_inserts_missing_records_and_writes_report(tmp_path, store):
    store.collection("src").documents = [make_doc("A", slot=1), make_doc("B", slot=2), make_doc("C")]
    store.collection("dst").documents = [make_doc("B", slot=2)]

    result = runner.invoke(app, _base_args(tmp_path, "merge"))

    assert result.exit_code == 0, result.output
    assert "Loading source collection 'src' into memory..." in result.stdout
    assert "Total new documents to insert: 2" in result.stdout
    assert "Inserted 2 new documents into target collection." in result.stdout
    assert "hunter2" not in result.stdout
    assert len(store.collection("dst").documents) == 3
    assert store.closed

    report = _report(tmp_path)
    assert report["status"] == "SUCCESS"
    assert report["summary"]["new_found"] == 2
    assert report["summary"]["inserted"] == 2
    assert report["meta"]["store_uri"] == "mongodb://svc:***@db:27017"
    assert sorted(item["record"]["signature"] for item in report["items"]) == ["A", "C"]

    log_text = (tmp_path / "logs" / "merge_run-1.log").read_text(encoding="utf-8")
    assert "comp=load msg=Loading source collection 'src' into memory..." in log_text
    assert "comp=write msg=Inserted 2 new documents" in log_text


def test_merge_rerun_is_noop(tmp_path, store):
    store.collection("src").documents = [make_doc("A")]
    store.collection("dst").documents = []

    first = runner.invoke(app, _base_args(tmp_path, "merge"))
    second = runner.invoke(app, _base_args(tmp_path, "merge"))

    assert first.exit_code == 0
    assert second.exit_code == 0
    assert "No new documents to insert." in second.stdout
    assert len(store.collection("dst").insert_calls) == 1
    assert _report(tmp_path)["status"] == "NOOP"


def test_merge_dry_run(tmp_path, store):
    store.collection("src").documents = [make_doc("A"), make_doc("B")]

    result = runner.invoke(app, _base_args(tmp_path, "merge", "--dry-run", "--report-items-limit", "1"))

    assert result.exit_code == 0
    assert store.collection("dst").insert_calls == []
    report = _report(tmp_path)
    assert report["status"] == "DRY_RUN"
    assert report["meta"]["dry_run"] is True
    assert report["summary"]["new_found"] == 2
    assert len(report["items"]) == 1
    assert report["meta"]["items_truncated"] is True


def test_decode_failure_exit_code_and_target_untouched(tmp_path, store):
    store.collection("src").documents = [make_doc("A")]
    store.collection("dst").documents = [{"_id": "x1", "signature": 42}]

    result = runner.invoke(app, _base_args(tmp_path, "merge"))

    assert result.exit_code == 4
    assert "DECODE_ERROR" in result.output
    assert store.collection("dst").insert_calls == []
    report = _report(tmp_path)
    assert report["status"] == "FAILED"
    assert report["error"]["code"] == "DECODE_ERROR"
    assert report["error"]["details"]["collection"] == "dst"
    assert report["error"]["details"]["document_id"] == "x1"


def test_write_failure_exit_code(tmp_path, store):
    store.collection("src").documents = [make_doc("A")]
    store.collection("dst").insert_error = WriteError("rejected", collection="dst", attempted=1)

    result = runner.invoke(app, _base_args(tmp_path, "merge"))

    assert result.exit_code == 5
    assert _report(tmp_path)["error"]["code"] == "WRITE_ERROR"


def test_unreachable_store_exit_code(tmp_path, monkeypatch):
    import sigmerge.main as cli_module

    def factory(*args, **kwargs):
        raise ConnectivityError("Invalid store configuration: bad uri")

    monkeypatch.setattr(cli_module, "MongoDocumentStore", factory)

    result = runner.invoke(app, _base_args(tmp_path, "merge"))

    assert result.exit_code == 3
    assert _report(tmp_path)["error"]["category"] == "connectivity"


def test_check_store(tmp_path, store):
    result = runner.invoke(app, _base_args(tmp_path, "check-store"))

    assert result.exit_code == 0
    assert store.pings == 1
    assert "OK: store reachable at mongodb://svc:***@db:27017" in result.stdout


def test_check_store_failure(tmp_path, store):
    store.ping_error = ConnectivityError("Store is unreachable: timeout")

    result = runner.invoke(app, _base_args(tmp_path, "check-store"))

    assert result.exit_code == 3
    assert "CONNECTIVITY_ERROR" in result.output


def test_invalid_log_level_is_config_error(tmp_path):
    result = runner.invoke(app, _base_args(tmp_path, "--log-level", "LOUD", "merge"))
    assert result.exit_code == 2
    assert "invalid settings" in result.output


def test_collections_from_env(tmp_path, store, monkeypatch):
    monkeypatch.setenv("SOURCE_COLLECTION", "env_src")
    monkeypatch.setenv("TARGET_COLLECTION", "env_dst")
    store.collection("env_src").documents = [make_doc("A")]

    result = runner.invoke(
        app,
        ["--log-dir", str(tmp_path / "logs"), "--report-dir", str(tmp_path / "reports"), "merge"],
    )

    assert result.exit_code == 0, result.output
    assert len(store.collection("env_dst").documents) == 1


def test_negative_server_timeout_is_config_error(tmp_path, store):
    result = runner.invoke(app, _base_args(tmp_path, "--server-timeout-ms", "-5", "merge"))

    assert result.exit_code == 2
    assert "server_timeout_ms must be positive" in result.output
    assert store.created == []


def test_negative_report_items_limit_is_rejected(tmp_path, store):
    result = runner.invoke(app, _base_args(tmp_path, "merge", "--report-items-limit", "-1"))

    assert result.exit_code == 2
    assert store.created == []
