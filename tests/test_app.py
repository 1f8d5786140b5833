from pathlib import Path

import pytest

from waterlevel import __main__ as entrypoint
from waterlevel.app import parse_args, run
from waterlevel.services.runner import Runner
from waterlevel.settings import harness_settings


@pytest.fixture(autouse=True)
def _no_signal_handlers(monkeypatch):
    monkeypatch.setattr(Runner, "_setup_signals", lambda self: None)


def _config(tmp_path: Path, text: str = "queue:\n  kind: memory\ntable:\n  kind: memory\n") -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(text, encoding="utf-8")
    return path


def test_parse_args_defaults():
    args = parse_args([])
    assert args.days == harness_settings.duration_days
    assert not args.preview


def test_run_with_memory_backends(tmp_path):
    summary = run(["--days", "0.25", "--config", str(_config(tmp_path))])

    assert summary.published == 6
    assert summary.processed == 6


def test_preview_does_not_need_a_config(tmp_path):
    assert run(["--preview", "--days", "1", "--config", str(tmp_path / "missing.yaml")]) is None
    assert run(["--preview", "--days", "0"]) is None


def test_main_reports_configuration_errors(tmp_path, monkeypatch):
    config = _config(tmp_path, "table:\n  kind: rest\n")
    monkeypatch.setattr("sys.argv", ["waterlevel", "--days", "1", "--config", str(config)])
    monkeypatch.setattr("waterlevel.app.storage_settings.connection_string", None)

    assert entrypoint.main() == 2


def test_main_reports_invalid_duration(tmp_path, monkeypatch):
    monkeypatch.setattr("sys.argv", ["waterlevel", "--days", "-1", "--config", str(_config(tmp_path))])

    assert entrypoint.main() == 2


def test_main_success(tmp_path, monkeypatch):
    monkeypatch.setattr("sys.argv", ["waterlevel", "--days", "0.1", "--config", str(_config(tmp_path))])

    assert entrypoint.main() == 0
