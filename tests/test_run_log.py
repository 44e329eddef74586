from datetime import datetime

from apim_bulk_app import run_log


def test_create_makes_timestamped_file(tmp_path):
    logs = tmp_path / "logs"
    log = run_log.RunLog.create(logs, "export", now=datetime(2025, 1, 2, 3, 4, 5))
    assert log.path == logs / "export_log_20250102_030405.log"
    assert log.path.exists()
    assert log.path.read_text() == ""


def test_message_echoes_and_appends(tmp_path, capsys):
    log = run_log.RunLog.create(tmp_path, "import")
    log.message("first")
    log.message("second")
    log.append_raw("tool stderr")
    assert capsys.readouterr().out == "first\nsecond\n"
    assert log.path.read_text() == "first\nsecond\ntool stderr\n"


def test_quiet_log_still_writes_file(tmp_path, capsys):
    log = run_log.RunLog.create(tmp_path, "export", echo=False)
    log.message("hidden")
    assert capsys.readouterr().out == ""
    assert "hidden" in log.path.read_text()


def test_preview_never_touches_disk(tmp_path, capsys, monkeypatch):
    monkeypatch.chdir(tmp_path)
    log = run_log.RunLog.preview()
    log.message("would export")
    log.append_raw("ignored")
    assert log.path is None
    assert capsys.readouterr().out == "would export\n"
    assert list(tmp_path.iterdir()) == []


def test_list_and_clean_logs(tmp_path):
    (tmp_path / "export_log_1.log").write_text("a")
    (tmp_path / "import_log_2.log").write_text("b")
    (tmp_path / "keep.txt").write_text("c")
    (tmp_path / "sub").mkdir()
    (tmp_path / "sub" / "nested.log").write_text("d")

    assert [p.name for p in run_log.list_logs(tmp_path)] == [
        "export_log_1.log",
        "import_log_2.log",
    ]
    removed = run_log.clean_logs(tmp_path)
    assert removed == ["export_log_1.log", "import_log_2.log"]
    assert (tmp_path / "keep.txt").exists()
    assert (tmp_path / "sub" / "nested.log").exists()


def test_list_logs_missing_dir(tmp_path):
    assert run_log.list_logs(tmp_path / "missing") == []
    assert run_log.clean_logs(tmp_path / "missing") == []
